"""Encoding detection for CUE sheet bytes"""
import codecs
import unicodedata

import chardet


REPLACEMENT_CHAR = "\ufffd"
WINDOWS_1252 = "cp1252"
LATIN1_FALLBACK = "cue-latin1-fallback"


def _latin1_fallback(error):
    """Map the five bytes cp1252 leaves undefined to the matching C1 controls"""
    if not isinstance(error, UnicodeDecodeError):
        raise error
    undefined = error.object[error.start:error.end]
    return "".join(chr(b) for b in undefined), error.end


codecs.register_error(LATIN1_FALLBACK, _latin1_fallback)


def decode_windows_1252(raw_data):
    """
    Decode bytes as Windows-1252 the way web browsers do.

    Bytes 0x81, 0x8D, 0x8F, 0x90 and 0x9D decode to U+0081, U+008D, U+008F,
    U+0090 and U+009D, so the result never contains replacement characters.
    """
    return raw_data.decode(WINDOWS_1252, errors=LATIN1_FALLBACK)


def resolve_cue_text_with_encoding(raw_data):
    """
    Decode raw CUE bytes, recovering from legacy Windows code pages.

    UTF-8 wins whenever it decodes cleanly. Otherwise the decoding with the
    fewest replacement characters wins between UTF-8 and Windows-1252, with
    ties going to UTF-8.

    Args:
        raw_data: Raw bytes of the CUE file

    Returns:
        Tuple of (NFC-normalized text, name of the encoding used)
    """
    utf8_text = raw_data.decode("utf-8", errors="replace")
    utf8_count = utf8_text.count(REPLACEMENT_CHAR)

    if utf8_count == 0:
        return unicodedata.normalize("NFC", utf8_text), "utf-8"

    win_text = decode_windows_1252(raw_data)
    if win_text.count(REPLACEMENT_CHAR) < utf8_count:
        return unicodedata.normalize("NFC", win_text), WINDOWS_1252

    return unicodedata.normalize("NFC", utf8_text), "utf-8"


def resolve_cue_text(raw_data):
    """Decode raw CUE bytes to NFC-normalized text (see resolve_cue_text_with_encoding)."""
    text, _ = resolve_cue_text_with_encoding(raw_data)
    return text


def _describe_detected(raw_data):
    result = chardet.detect(raw_data)
    if not result or not result.get("encoding"):
        return "unknown"
    return f"{result['encoding']} (confidence: {result.get('confidence') or 0:.2%})"


def read_cue_file(cue_path, log_func=None):
    """
    Read a CUE file from disk and decode it.

    Args:
        cue_path: Path to the CUE file
        log_func: Optional function to call for logging messages

    Returns:
        Decoded CUE text
    """
    with open(cue_path, "rb") as f:
        raw_data = f.read()

    text, encoding = resolve_cue_text_with_encoding(raw_data)
    if log_func:
        if encoding == "utf-8":
            log_func(f"📝 CUE file decoded as UTF-8")
        else:
            log_func(f"🔄 CUE file is not valid UTF-8, decoded as Windows-1252 "
                     f"(chardet guess: {_describe_detected(raw_data)})")
    return text
