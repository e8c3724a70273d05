import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from point_forecast.domain.errors import StagingError


logger = logging.getLogger(__name__)


class StagingArea:
    """Temporary directory next to the published directory for one download cycle.

    Used as a context manager: the staging directory is removed on exit
    unless `publish()` moved it into place.
    """

    def __init__(self, published_dir: Path, prefix: str = "gfs_download_") -> None:
        self.published_dir = Path(published_dir)
        self.prefix = prefix
        self.path: Optional[Path] = None
        self._published = False

    def __enter__(self) -> "StagingArea":
        parent = self.published_dir.resolve().parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
            self.path = Path(tempfile.mkdtemp(dir=parent, prefix=self.prefix))
        except OSError as exc:
            raise StagingError(f"failed to create staging directory in {parent}: {exc}") from exc
        logger.info("Staging directory: %s", self.path)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def file_path(self, file_name: str) -> Path:
        return self._require_path() / file_name

    def temp_path(self, file_name: str) -> Path:
        return self._require_path() / f"{file_name}.tmp"

    def publish(self) -> Path:
        """Swap the staging directory in for the published one.

        The old directory is moved aside first and restored if the final
        rename fails. Between the two renames the published path does not
        exist, readers that look then find no files.
        """
        path = self._require_path()
        backup = None
        if self.published_dir.exists():
            backup = self.published_dir.with_name(f".{self.published_dir.name}.old-{uuid.uuid4().hex[:8]}")
            try:
                os.rename(self.published_dir, backup)
            except OSError as exc:
                raise StagingError(f"failed to move old output directory aside: {exc}") from exc

        try:
            os.rename(path, self.published_dir)
        except OSError as exc:
            if backup is not None:
                try:
                    os.rename(backup, self.published_dir)
                except OSError as restore_exc:
                    raise StagingError(
                        f"failed to move temp directory to final location ({exc}) "
                        f"and to restore {self.published_dir} from {backup}: {restore_exc}"
                    ) from exc
            raise StagingError(f"failed to move temp directory to final location: {exc}") from exc

        self._published = True
        if backup is not None:
            try:
                shutil.rmtree(backup)
            except OSError as exc:
                logger.warning("Could not remove previous output directory %s: %s", backup, exc)
        return self.published_dir

    def cleanup(self) -> None:
        if self._published or self.path is None or not self.path.exists():
            return
        try:
            shutil.rmtree(self.path)
        except OSError as exc:
            logger.warning("Could not remove staging directory %s: %s", self.path, exc)

    def _require_path(self) -> Path:
        if self.path is None:
            raise StagingError("staging area used outside of its context")
        return self.path
