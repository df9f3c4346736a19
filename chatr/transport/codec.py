"""
Datagram codec for Chatr.

Every datagram carries base64(utf8(text)). The base64 layer only keeps the
payload printable across encoding-sensitive hops; it is not encryption.
"""

import base64
import binascii


class CodecError(Exception):
    """Raised when a datagram cannot be decoded."""
    pass


def encode_datagram(text: str) -> bytes:
    """
    Encode message text into datagram bytes.
    
    Args:
        text: Message text
        
    Returns:
        ASCII base64 bytes ready for sendto()
    """
    return base64.b64encode(text.encode('utf-8'))


def decode_datagram(data: bytes) -> str:
    """
    Decode datagram bytes back into message text.
    
    Args:
        data: Raw datagram payload
        
    Returns:
        Decoded message text
        
    Raises:
        CodecError: If the payload is not base64 encoded UTF-8
    """
    try:
        raw = base64.b64decode(data.strip(), validate=True)
        return raw.decode('utf-8')
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"Malformed datagram: {e}") from e
