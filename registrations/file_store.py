import logging
import os

logger = logging.getLogger(__name__)


class LocalFileStore:
    """Uploaded evidence files kept in a single local directory."""

    def __init__(self, uploads_dir: str):
        self.uploads_dir = uploads_dir

    def ensure_directory(self):
        os.makedirs(self.uploads_dir, exist_ok=True)

    def resolve(self, reference: str) -> str:
        """Map a stored reference such as ``/uploads/abc.jpg`` to its file inside the uploads directory."""
        return os.path.join(self.uploads_dir, os.path.basename(reference))

    def delete(self, reference: str) -> bool:
        """
        Remove the file behind ``reference``.

        Returns False when the file is already gone. Any other OS failure
        propagates to the caller.
        """
        path = self.resolve(reference)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.debug(f"Evidence file already absent: {path}")
            return False
        logger.info(f"Removed evidence file {path}")
        return True
