from app.config.settings import Settings
from app.storage.local_disk import LocalDisk


class FileStorage:
    """The two storage areas the upload boundary writes to.

    ``private`` holds uploaded documents under random names. ``public`` holds
    uploaded images and everything the listing page links to (question images,
    generated answer sheets).
    """

    EXAM_IMAGES_DIRECTORY = "exam_images"
    EXAM_ANSWERS_DIRECTORY = "exam_answers"

    def __init__(self, private: LocalDisk, public: LocalDisk) -> None:
        self.private = private
        self.public = public

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileStorage":
        return cls(
            private=LocalDisk(settings.files_root),
            public=LocalDisk(settings.public_files_root),
        )
