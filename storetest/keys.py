import math

KEY_PREFIX_LENGTH = 30


def round_half_up(x, digits=0):
    scale = 10 ** digits
    return math.floor(x * scale + 0.5) / scale


def hit_key_count(key_count, hit_percent):
    """Number of keys in the hot set [0, hit_key_count)."""
    if key_count < 0:
        raise ValueError(f"key_count must be >= 0, got {key_count}")
    if not 0 <= hit_percent <= 100:
        raise ValueError(f"hit_percent must be within [0, 100], got {hit_percent}")
    return int(round_half_up(key_count * hit_percent / 100.0))


def generate(i, corpus):
    """Return the (key, value) pair for index i.

    The value is the corpus line at i modulo the corpus length and the key is
    the first 30 characters of that line followed by i, so any index maps to
    the same pair on every call.
    """
    if not corpus:
        raise IndexError("seed corpus is empty")
    value = corpus[i % len(corpus)]
    return value[:KEY_PREFIX_LENGTH] + str(i), value
