"""
Source value: the per-client, time-windowed challenge seed.

Never stored server-side. It is rebuilt from the request on every hit, so a
cookie stays valid for as long as the client keeps the same User-Agent,
Accept-Language and Host and the timestamp bucket does not roll over.
"""

DELIMITER = "|"

# Placeholders for missing headers
UNKNOWN_USER_AGENT = "Unknown"
EMPTY_ACCEPT_LANGUAGE = "Empty"
UNKNOWN_HOST = "Unknown"

SECONDS_PER_DAY = 86400


def bucket_timestamp(now: int, window: int) -> int:
    """Round ``now`` down to the start of its ``window``-second bucket."""
    if window <= 0:
        return now
    return now - (now % window)


def build_source_value(
    user_agent: str | None,
    accept_language: str | None,
    host: str | None,
    now: int,
    window: int,
) -> str:
    """
    Build the source value the client must hash.

    Format: ``UserAgent|Timestamp|Language|Host``, the layout the
    browser-side solver receives through ``getSourceValue()``.
    """
    timestamp = bucket_timestamp(int(now), int(window))
    return DELIMITER.join(
        [
            user_agent or UNKNOWN_USER_AGENT,
            str(timestamp),
            accept_language or EMPTY_ACCEPT_LANGUAGE,
            host or UNKNOWN_HOST,
        ]
    )
