# Data types shared across the download pipeline
from typing import NamedTuple, Optional


class Capture(NamedTuple):
    """One row of the capture index: a recorded fetch of ``original`` at ``timestamp``.

    ``timestamp`` is the archive's 14-digit ``YYYYMMDDhhmmss`` string and is
    kept as a string; it is compared lexically, never as a number.
    """
    timestamp: str
    original: str
    mimetype: Optional[str] = None

    def to_record(self):
        """Dict form used for the debug metadata file (mimetype omitted when unknown)."""
        record = {'timestamp': self.timestamp, 'original': self.original}
        if self.mimetype is not None:
            record['mimetype'] = self.mimetype
        return record
