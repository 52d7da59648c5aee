# kang/batch.py
"""
Directory mode: convert every matching file of a directory, one at a time.

A file that fails is logged and recorded in the report; the batch carries on
with the next file.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .config import KangConfig
from .container import ARCHIVE_EXTENSION
from .convenience import compress_file, decompress_file
from .dataclasses import ArchiveStats
from .exceptions import KangError, KangIOError
from .file import SOURCE_EXTENSION
from .types import Command

logger = logging.getLogger(__name__)

@dataclass
class BatchReport:
    """Outcome of a directory run."""
    succeeded: List[ArchiveStats] = field(default_factory=list)
    failed: List[Tuple[Path, Exception]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed

def extensions_for(command: Command) -> Tuple[str, str]:
    """Returns the (input, output) file extensions for a command."""
    if command == Command.COMPRESS:
        return SOURCE_EXTENSION, ARCHIVE_EXTENSION
    return ARCHIVE_EXTENSION, SOURCE_EXTENSION

def process_directory(
    command: Union[Command, str],
    input_dir,
    output_dir,
    *,
    config: Optional[KangConfig] = None,
) -> BatchReport:
    """
    Converts every regular file with the command's input extension.

    Args:
        command: COMPRESS (.safetensors -> .kang) or DECOMPRESS (.kang -> .safetensors).
        input_dir: Directory to scan (not recursive).
        output_dir: Directory receiving the converted files; created if missing.
        config: (Optional) Settings passed to every conversion.

    Returns:
        A `BatchReport` listing converted and failed files.

    Raises:
        KangIOError: If the input directory cannot be listed or the output
            directory cannot be created.
    """
    if isinstance(command, str):
        command = Command[command.upper()]
    config = config or KangConfig()
    input_dir, output_dir = Path(input_dir), Path(output_dir)
    source_ext, target_ext = extensions_for(command)

    if not output_dir.exists():
        logger.info("Output directory does not exist. Creating: %s", output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        entries = sorted(input_dir.iterdir())
    except OSError as e:
        raise KangIOError.from_os_error(e, e.filename or input_dir) from e

    logger.info("Starting batch %s from: %s", command.name.lower(), input_dir)
    report = BatchReport()
    for entry in entries:
        if not entry.is_file() or entry.suffix != source_ext:
            continue
        target = output_dir / entry.with_suffix(target_ext).name
        try:
            if command == Command.COMPRESS:
                stats = compress_file(entry, target, config=config)
            else:
                stats = decompress_file(entry, target, config=config)
        except KangError as e:
            logger.error("Failed to %s %s: %s", command.name.lower(), entry, e)
            report.failed.append((entry, e))
            continue
        except Exception as e:
            logger.exception("Unexpected error while converting %s", entry)
            report.failed.append((entry, e))
            continue
        report.succeeded.append(stats)

    logger.info(
        "Batch processing finished. Total %d files processed, %d failed.",
        report.total, len(report.failed),
    )
    return report
