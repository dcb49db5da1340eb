"""Clipboard and browser helpers for the copy and open-link user actions."""

import logging
import re
import shutil
import subprocess
import webbrowser
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

_DRIVE_FILE_ID = re.compile(r"/file/d/([a-zA-Z0-9_-]+)")


def normalize_link(text: str) -> str:
    text = text.strip()
    return text if text.startswith("http") else f"https://{text}"


def is_link(text: str) -> bool:
    text = text.strip()
    if not text or any(ch.isspace() for ch in text):
        return False
    parsed = urlparse(normalize_link(text))
    host = parsed.hostname or ""
    return parsed.scheme in ("http", "https") and "." in host


def drive_image_url(url: str) -> str:
    """Turn a Google Drive share link into a direct image URL; other URLs pass through."""
    match = _DRIVE_FILE_ID.search(url)
    if match:
        return f"https://drive.google.com/uc?export=view&id={match.group(1)}"
    return url


def open_link(text: str) -> bool:
    if not is_link(text):
        logger.warning("Could not open the link: %r", text)
        return False
    return webbrowser.open(normalize_link(text), new=2)


def copy_to_clipboard(text: str) -> bool:
    commands = []
    if shutil.which("xclip"):
        commands.append(["xclip", "-selection", "clipboard"])
    if shutil.which("xsel"):
        commands.append(["xsel", "--clipboard", "--input"])
    if shutil.which("wl-copy"):
        commands.append(["wl-copy"])
    for command in commands:
        try:
            subprocess.run(command, input=text, text=True, check=True)
            return True
        except (subprocess.CalledProcessError, OSError) as exc:
            logger.debug("%s failed: %s", command[0], exc)
    logger.warning("Failed to copy text to clipboard")
    return False
