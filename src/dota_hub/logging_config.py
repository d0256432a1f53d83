"""Per-job logging for dota-hub.

Each job run gets its own DEBUG log file, ``{data_dir}/logs/{job}-{stamp}.log``,
plus an INFO console stream. Jobs run from cron, so only the newest
``keep`` files per job are kept.
"""

import logging
from datetime import datetime
from pathlib import Path

CONSOLE_FORMAT = "%(asctime)s %(levelname)-5s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def prune_logs(log_dir: Path, job: str, keep: int) -> list[Path]:
    """Delete all but the newest *keep* log files of *job*. Returns the deleted paths."""
    if keep <= 0:
        return []
    # Stamps sort lexically in time order
    files = sorted(log_dir.glob(f"{job}-*.log"))
    stale = files[:-keep] if len(files) > keep else []
    for path in stale:
        path.unlink(missing_ok=True)
    return stale


def setup_logging(
    data_dir: str = "data",
    job: str = "run",
    console_level: int = logging.INFO,
    keep: int = 30,
) -> Path:
    """Attach console and file handlers to the root logger.

    Calling it again replaces the handlers instead of stacking them.

    Returns:
        Path of the new log file.
    """
    log_dir = Path(data_dir) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{job}-{datetime.now():%Y-%m-%d-%H%M%S}.log"

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

    root.addHandler(console)
    root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for stale in prune_logs(log_dir, job, keep):
        logging.getLogger(__name__).debug("Removed old log %s", stale.name)

    return log_file
