import logging

logger = logging.getLogger(__name__)


def load_seed_data(path, min_length=0):
    """Load the seed corpus, one entry per non-empty line, in file order."""
    lines = []
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            line = line.rstrip("\r\n")
            if not line or len(line) < min_length:
                continue
            lines.append(line)

    if not lines:
        raise ValueError(f"No seed data found in {path}")

    logger.info(f"Loaded {len(lines)} seed lines from {path}")
    # Immutable for the lifetime of a run
    return tuple(lines)
