from app.processor.exceptions import ProcessorError


class ArtifactRenderError(ProcessorError):
    """Raised when a generated answer document cannot be rendered or stored."""
