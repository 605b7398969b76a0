"""Atomic replacement of transcript files."""

import os
import tempfile
from pathlib import Path


class AtomicFileWriter:
    """Writes a whole file through a sibling temp file and ``os.replace``.

    Readers (a browser reloading the transcript, say) see either the old
    page or the new one, never a half-written file.
    """

    @staticmethod
    def write(path: Path, content: str, encoding: str = "utf-8") -> None:
        """Replace ``path`` with ``content``.

        Raises:
            OSError: If the temp file cannot be written or renamed
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Temp file must live on the same filesystem for the rename
        tmp = tempfile.NamedTemporaryFile(
            "w",
            encoding=encoding,
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with tmp:
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp.name, path)
        except BaseException:
            Path(tmp.name).unlink(missing_ok=True)
            raise
