"""CUE sheet text parser"""
import re

from .models import CueSheet, CueTrack


TRACK_PATTERN = re.compile(r'TRACK\s+(\d+)')
INDEX_PATTERN = re.compile(r'INDEX 01\s+(\S+)')
QUOTED_PATTERN = re.compile(r'"(.+?)"')

REM_FIELDS = (
    ("REM DATE", "date"),
    ("REM GENRE", "genre"),
    ("REM CATALOG", "catalog"),
    ("REM COMMENT", "comment"),
    ("REM DISCNUMBER", "disc_number"),
    ("REM DISCTOTAL", "total_discs"),
)
NUMERIC_FIELDS = ("disc_number", "total_discs")


def _extract_quoted(line):
    match = QUOTED_PATTERN.search(line)
    return match.group(1) if match else None


def _extract_value_after(prefix, line):
    """
    Extract the value of a ``REM <KEY> <value>`` line.

    Quoted values are taken verbatim, otherwise the remainder of the line is
    used with any stray quotes removed.
    """
    quoted = re.search(re.escape(prefix) + r'\s+"([^"]+)"', line, re.IGNORECASE)
    if quoted:
        return quoted.group(1)

    remainder = re.sub('^' + re.escape(prefix) + r'\s*', '', line, flags=re.IGNORECASE)
    remainder = remainder.replace('"', '').strip()
    return remainder or None


def _to_number(value):
    """Plain string to number conversion, None when it is not a number"""
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if number != number:
        return None
    return int(number) if number.is_integer() else number


def parse_cue_text(text):
    """
    Parse CUE sheet text into a CueSheet.

    The parser never raises: lines it does not understand are skipped. TITLE
    and PERFORMER lines before the first TRACK describe the album, after it
    the current track. A TITLE/PERFORMER line without a quoted value keeps
    the previous value.

    ``REM COMMENT`` lines are skipped before REM dispatch, so ``comment``
    is never populated.

    Args:
        text: Decoded CUE sheet text

    Returns:
        CueSheet with album metadata and tracks in file order
    """
    sheet = CueSheet()
    current_track = None

    for line in (l.strip() for l in re.split(r'\r?\n', text)):
        if not line or line.startswith("REM COMMENT"):
            continue

        if line.startswith("REM "):
            for prefix, attr in REM_FIELDS:
                if line.startswith(prefix):
                    value = _extract_value_after(prefix, line)
                    if attr in NUMERIC_FIELDS:
                        value = _to_number(value)
                    setattr(sheet, attr, value)
                    break
            continue

        if line.startswith("FILE"):
            sheet.file = _extract_quoted(line)
            continue

        if line.startswith("TRACK"):
            match = TRACK_PATTERN.search(line)
            number = int(match.group(1)) if match else len(sheet.tracks) + 1
            current_track = CueTrack(track=number)
            sheet.tracks.append(current_track)
            continue

        if line.startswith("TITLE"):
            value = _extract_quoted(line)
            if value is not None:
                if current_track is None:
                    sheet.album = value
                else:
                    current_track.title = value
            continue

        if line.startswith("PERFORMER"):
            value = _extract_quoted(line)
            if value is not None:
                if current_track is None:
                    sheet.performer = value
                else:
                    current_track.performer = value
            continue

        if line.startswith("INDEX 01") and current_track is not None:
            match = INDEX_PATTERN.search(line)
            if match:
                current_track.index = match.group(1)
            continue

    return sheet
