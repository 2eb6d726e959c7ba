# core/plain_text.py
from util.errors import EmptyExtraction


def decode_text(file_bytes: bytes) -> str:
    """
    Decode an uploaded .txt (UTF-8, BOM tolerated, undecodable bytes replaced)
    and strip it. Raises EmptyExtraction when nothing readable remains.
    """
    text = file_bytes.decode("utf-8-sig", errors="replace").replace("\x00", "").strip()
    if not text:
        raise EmptyExtraction("File appears to be empty or contains no readable text")
    return text
