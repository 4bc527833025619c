"""File discovery and searching utilities"""
import os

from .cue_parser import parse_cue_text
from ..utils.encoding import read_cue_file


AUDIO_EXTENSIONS = [".ape", ".flac", ".wav", ".wv"]
IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.bmp', '.gif', '.tiff', '.tif', '.webp')


def find_album_cover(album_path, log_func):
    """
    Search for album cover image in the album directory and subdirectories.
    Priority:
    1. Images with "front", "cover", "poster" or "scan" in the name (case insensitive)
    2. First image without "back", "side", or "inner" in the name

    Args:
        album_path: Path to the album directory
        log_func: Function to call for logging messages

    Returns:
        Path to cover image or None
    """
    front_images = []
    other_images = []

    for root, dirs, files in os.walk(album_path):
        dirs.sort()
        for file in sorted(files):
            if not file.lower().endswith(IMAGE_EXTENSIONS):
                continue

            file_lower = file.lower()
            file_path = os.path.join(root, file)

            if "front" in file_lower or os.path.splitext(file_lower)[0] in ("f", "jc"):
                front_images.append(file_path)
            elif "cover" in file_lower or "poster" in file_lower or "scan" in file_lower:
                front_images.append(file_path)
            elif not any(word in file_lower for word in ["back", "side", "inner"]):
                other_images.append(file_path)

    if front_images:
        cover = front_images[0]
        log_func(f"🖼️ Found front cover image: {os.path.relpath(cover, album_path)}")
        return cover

    if other_images:
        cover = other_images[0]
        log_func(f"🖼️ Found cover image: {os.path.relpath(cover, album_path)}")
        return cover

    log_func("ℹ️ No suitable cover image found")
    return None


def _read_referenced_file(cue_path, log_func):
    """
    Parse a CUE file and return the audio file named by its FILE directive.

    Returns:
        Referenced file name, or None if the CUE has none or cannot be read
    """
    try:
        cue_sheet = parse_cue_text(read_cue_file(cue_path))
    except OSError as e:
        log_func(f"    ⚠️  Error reading CUE file: {str(e)}")
        return None
    return cue_sheet.file


def _find_audio_file(audio_file_name, dirpath, filenames):
    """
    Locate an audio file in the directory, trying exact match first, then case-insensitive.

    Args:
        audio_file_name: Name of the audio file to find
        dirpath: Directory to search in
        filenames: List of files in the directory

    Returns:
        Full path to the audio file if found, None otherwise
    """
    audio_file_path = os.path.join(dirpath, audio_file_name)
    if os.path.isfile(audio_file_path):
        return audio_file_path

    # Case-insensitive search for CUEs written on Windows
    for existing_file in filenames:
        if existing_file.lower() == audio_file_name.lower():
            return os.path.join(dirpath, existing_file)

    return None


def _find_audio_file_fallback(cue_path, dirpath, filenames, log_func):
    """
    Try to find an audio file matching the CUE file when the FILE directive fails.

    Fallback strategies:
    1. Try cue_basename + audio extensions (e.g., album.cue -> album.flac)
    2. If CUE filename ends with audio extension (e.g., album.flac.cue),
       try removing .cue (e.g., album.flac)

    Returns:
        Path to audio file if found, None otherwise
    """
    cue_basename = os.path.splitext(os.path.basename(cue_path))[0]

    log_func(f"    🔍 Fallback: Trying to find audio file with same name as CUE...")
    for ext in AUDIO_EXTENSIONS:
        audio_file_path = _find_audio_file(cue_basename + ext, dirpath, filenames)
        if audio_file_path:
            log_func(f"    ✅ Found matching audio file: {os.path.basename(audio_file_path)}")
            return audio_file_path

    for ext in AUDIO_EXTENSIONS:
        if cue_basename.lower().endswith(ext):
            log_func(f"    🔍 Fallback: CUE name ends with audio extension, trying {cue_basename}...")
            audio_file_path = _find_audio_file(cue_basename, dirpath, filenames)
            if audio_file_path:
                log_func(f"    ✅ Found matching audio file: {os.path.basename(audio_file_path)}")
                return audio_file_path

    log_func(f"    ❌ Could not find audio file through fallback methods")
    return None


def find_cue_image_pairs(root_path, log_func=None):
    """
    Recursively search for CUE + image file pairs in root_path and all subdirectories.

    Each .cue file is parsed and its FILE directive matched against the files
    next to it, falling back to audio files named after the CUE file.

    Args:
        root_path: Root directory to search
        log_func: Optional function to call for logging messages

    Returns:
        List of tuples: [(cue_path, image_path, containing_dir), ...]
    """
    if log_func is None:
        log_func = lambda msg: None

    pairs = []

    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames.sort()
        cue_files = sorted(f for f in filenames if f.lower().endswith(".cue"))

        if cue_files:
            rel_dir = os.path.relpath(dirpath, root_path) if dirpath != root_path else "."
            log_func(f"📁 Scanning directory: {rel_dir}")

        for cue_file in cue_files:
            cue_path = os.path.join(dirpath, cue_file)
            log_func(f"  📄 Found CUE file: {cue_file}")

            audio_file_name = _read_referenced_file(cue_path, log_func)
            audio_file_path = None

            if audio_file_name:
                # FILE may carry a relative path written on another system
                audio_file_name = os.path.basename(audio_file_name.replace("\\", "/"))
                audio_file_path = _find_audio_file(audio_file_name, dirpath, filenames)
                if audio_file_path:
                    log_func(f"    ✅ Matched: {cue_file} → {audio_file_name}")
            else:
                log_func(f"    ⚠️  No FILE directive found in {cue_file}")

            if not audio_file_path:
                audio_file_path = _find_audio_file_fallback(cue_path, dirpath, filenames, log_func)

            if audio_file_path:
                pairs.append((cue_path, audio_file_path, dirpath))
            else:
                log_func(f"    ❌ Audio file not found for {cue_file}")

    return pairs
