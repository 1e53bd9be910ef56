import re
import os


def extract_session_name(filename: str | None, platform: str) -> str:
    """
    Builds a session name from an uploaded export filename, handling the
    common WhatsApp/Telegram export names. Falls back to "<Platform> Chat".
    """
    # Get just the filename (strip directories, fake paths, etc.)
    name = os.path.basename(filename or "")

    if name.lower().endswith(".txt"):
        name = name[:-4]

    # "WhatsApp Chat with Alice", "WhatsApp Chat - Family", "Telegram Chat - Bob"
    pattern = re.compile(r"(?:whatsapp|telegram)\s+chat\s+(?:with|-)\s+", re.IGNORECASE)
    name = pattern.sub("", name)

    # Clean underscores, dashes, and multiple spaces that might remain
    name = re.sub(r"[_.-]+", " ", name)
    name = re.sub(r"\s{2,}", " ", name).strip()

    if not name:
        name = f"{platform.capitalize()} Chat"

    return name[:255]
