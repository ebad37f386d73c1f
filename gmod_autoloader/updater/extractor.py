"""Archive extractor for the auto-loader.

Unpacks a downloaded zip into a clean target directory. Every entry is
checked to stay inside the target, a single generated top-level folder
(e.g. ``<repo>-<tag>/`` in source archives) is flattened away, and the
archive file is always removed afterwards.

Extraction is a remove-then-rewrite of the target tree, not an atomic
swap: a run killed midway leaves a partial tree that the next run
removes before extracting again.
"""

import logging
import re
import shutil
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Tuple

from gmod_autoloader.updater.exceptions import (
    ArchiveCorruptError,
    FilesystemError,
    UnsafePathError,
)

logger = logging.getLogger("gmod_autoloader.extractor")


# Version-control metadata removed after flattening
VCS_METADATA_DIRS = (".git", ".github")

_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:")

RenameRule = Tuple[str, str]


@dataclass
class ExtractionResult:
    """Outcome of one archive extraction."""
    target_dir: Path
    extracted_files: int = 0
    failed_entries: List[str] = field(default_factory=list)
    flattened_from: Optional[str] = None
    renamed: List[RenameRule] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True if every file entry was written."""
        return not self.failed_entries


def resolve_inside(base: Path, relative_name: str) -> Path:
    """
    Resolve a stored entry name against a base directory.

    Args:
        base: Resolved target directory
        relative_name: Entry name as stored in the archive

    Returns:
        Resolved output path inside `base`

    Raises:
        UnsafePathError: If the name is absolute, carries a drive letter
            or resolves outside `base`
    """
    normalized = relative_name.replace("\\", "/")
    if normalized.startswith("/") or _DRIVE_PATTERN.match(normalized):
        raise UnsafePathError(relative_name)
    if ".." in PurePosixPath(normalized).parts:
        raise UnsafePathError(relative_name)

    candidate = (base / normalized).resolve()
    if candidate != base and not candidate.is_relative_to(base):
        raise UnsafePathError(relative_name)
    return candidate


class ArchiveExtractor:
    """Extracts zip archives into addon directories."""

    def __init__(self, vcs_dirs: Iterable[str] = VCS_METADATA_DIRS):
        """
        Initialize the extractor.

        Args:
            vcs_dirs: Directory names removed after flattening
        """
        self._vcs_dirs = tuple(vcs_dirs)

    def extract(
        self,
        archive_path: Path,
        target_dir: Path,
        renames: Iterable[RenameRule] = (),
    ) -> ExtractionResult:
        """
        Extract an archive into a freshly created target directory.

        Args:
            archive_path: Zip file to extract (deleted afterwards)
            target_dir: Directory to replace with the archive content
            renames: (relative_from, relative_to) rules applied afterwards

        Returns:
            ExtractionResult describing what was written

        Raises:
            FilesystemError: If the target directory cannot be reset
            ArchiveCorruptError: If the archive structure is unreadable
            UnsafePathError: If an entry escapes the target directory
        """
        archive_path = Path(archive_path)
        target_dir = Path(target_dir)

        try:
            self._reset_target(target_dir)
            base = target_dir.resolve()
            result = ExtractionResult(target_dir=target_dir)

            try:
                self._extract_entries(archive_path, base, result)
            except UnsafePathError:
                logger.error(f"Aborting extraction of {archive_path.name}, removing {target_dir}")
                shutil.rmtree(target_dir, ignore_errors=True)
                raise

            result.flattened_from = self._flatten_wrapper(base)
            result.renamed = self._apply_renames(base, renames)
        finally:
            self._remove_archive(archive_path)

        if result.failed_entries:
            logger.warning(
                f"Extracted {result.extracted_files} files into {target_dir}, "
                f"{len(result.failed_entries)} entries failed"
            )
        else:
            logger.info(f"Extracted {result.extracted_files} files into {target_dir}")
        return result

    def _reset_target(self, target_dir: Path) -> None:
        """Remove any previous install and recreate the directory."""
        if target_dir.exists():
            logger.debug(f"Removing previous install: {target_dir}")
            try:
                shutil.rmtree(target_dir)
            except OSError as e:
                raise FilesystemError(target_dir, "remove", e)

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(target_dir, "create directory", e)

    def _extract_entries(self, archive_path: Path, base: Path, result: ExtractionResult) -> None:
        """Write every archive entry below `base`."""
        try:
            zf = zipfile.ZipFile(archive_path)
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveCorruptError(archive_path, e)

        with zf:
            for info in zf.infolist():
                out_path = resolve_inside(base, info.filename)

                if info.is_dir():
                    try:
                        out_path.mkdir(parents=True, exist_ok=True)
                    except OSError as e:
                        logger.warning(f"Failed to create directory {info.filename}: {e}")
                        result.failed_entries.append(info.filename)
                    continue

                try:
                    out_path.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as src, open(out_path, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                except (
                    OSError,
                    zipfile.BadZipFile,
                    zlib.error,
                    NotImplementedError,  # unsupported compression method
                    RuntimeError,  # encrypted entry
                ) as e:
                    logger.warning(f"Failed to extract {info.filename}: {e}")
                    result.failed_entries.append(info.filename)
                    continue

                result.extracted_files += 1

    def _flatten_wrapper(self, base: Path) -> Optional[str]:
        """
        Move the content of a single top-level folder up into `base`.

        Returns:
            Name of the flattened wrapper, or None if there was none
        """
        children = list(base.iterdir())
        if len(children) != 1 or not children[0].is_dir():
            logger.debug("No single wrapper directory, keeping layout as extracted")
            return None

        wrapper_name = children[0].name
        # Rename aside first so a child named like the wrapper cannot collide
        wrapper = base / f".{wrapper_name}.flatten"
        try:
            children[0].rename(wrapper)
            for entry in list(wrapper.iterdir()):
                entry.rename(base / entry.name)
            shutil.rmtree(wrapper)
        except OSError as e:
            raise FilesystemError(base, f"flatten '{wrapper_name}' in", e)

        for name in self._vcs_dirs:
            vcs_path = base / name
            if vcs_path.is_dir():
                shutil.rmtree(vcs_path, ignore_errors=True)

        logger.debug(f"Flattened wrapper directory {wrapper_name}")
        return wrapper_name

    def _apply_renames(self, base: Path, renames: Iterable[RenameRule]) -> List[RenameRule]:
        """Apply rename rules best-effort; returns the rules applied."""
        applied = []
        for relative_from, relative_to in renames:
            try:
                source = resolve_inside(base, relative_from)
                target = resolve_inside(base, relative_to)
            except UnsafePathError as e:
                logger.warning(f"Skipping rename rule {relative_from} -> {relative_to}: {e}")
                continue

            if not source.exists():
                logger.debug(f"Rename source missing, skipped: {relative_from}")
                continue

            try:
                if target.is_dir():
                    shutil.rmtree(target)
                elif target.exists():
                    target.unlink()
                target.parent.mkdir(parents=True, exist_ok=True)
                source.rename(target)
            except OSError as e:
                logger.warning(f"Failed to rename {relative_from} -> {relative_to}: {e}")
                continue

            applied.append((relative_from, relative_to))
        return applied

    def _remove_archive(self, archive_path: Path) -> None:
        try:
            archive_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove archive {archive_path}: {e}")
