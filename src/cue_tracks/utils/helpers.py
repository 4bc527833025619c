"""General utility functions"""
import re
import sys
import subprocess
import unicodedata


ILLEGAL_NAME_CHARS = re.compile(r'[<>:"/\\|?*]+')


def safe_print(msg):
    """Print with handling for surrogate characters that can't be encoded"""
    try:
        print(msg)
    except UnicodeEncodeError:
        # Replace problematic characters with safe representation
        safe_msg = msg.encode('utf-8', errors='replace').decode('utf-8')
        print(safe_msg)
    sys.stdout.flush()


def run_command(cmd, logfile=None, env=None, cwd=None, line_func=None):
    """
    Execute a command, capturing its merged stdout/stderr line by line.

    Args:
        cmd: Command and arguments as a list
        logfile: Optional path to a log file the output is appended to
        env: Optional environment variables dict
        cwd: Optional working directory for the command
        line_func: Optional function called with each output line

    Returns:
        Tuple of (exit code, list of output lines)
    """
    lines = []
    log_handle = open(logfile, "a", encoding="utf-8", errors="replace") if logfile else None
    try:
        if log_handle:
            # Handle potential encoding issues in command strings
            try:
                cmd_str = ' '.join(str(c) for c in cmd)
            except UnicodeEncodeError:
                cmd_str = ' '.join(repr(c) for c in cmd)
            log_handle.write(f"\n$ {cmd_str}\n")
            log_handle.flush()

        process = subprocess.Popen(
            cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL, env=env, cwd=cwd,
            text=True, encoding="utf-8", errors="replace"
        )
        for raw_line in process.stdout:
            line = raw_line.rstrip("\r\n")
            lines.append(line)
            if log_handle:
                log_handle.write(line + "\n")
            if line_func:
                line_func(line)
        process.stdout.close()
        exit_code = process.wait()

        if log_handle:
            log_handle.write(f"[Exit code: {exit_code}]\n")
            log_handle.flush()
        return exit_code, lines
    finally:
        if log_handle:
            log_handle.close()


def sanitize_file_name(name):
    """Replace characters that are illegal in file names with underscores"""
    return ILLEGAL_NAME_CHARS.sub("_", name).strip()


def normalize_title(title):
    """
    Repair a track title before tagging.

    Mis-decoded apostrophes survive CUE decoding as U+FFFD, so they are put
    back as plain apostrophes before NFC normalization.
    """
    return unicodedata.normalize("NFC", title.replace("\ufffd", "'"))
