"""
Keyword list helpers for the STARS handshake.

The keyword list is a shared secret between node and server. It comes either
from an inline space separated string or from a keyword file holding one
keyword per line.
"""
from pathlib import Path
from typing import List, Union


def split_keywords(text: str) -> List[str]:
    """
    Split an inline keyword string on single spaces.

    Empty items produced by repeated spaces are kept so that indices line up
    with the server's copy of the list.
    """
    return text.split(" ")


def read_keyword_file(path: Union[str, Path], encoding: str = "utf-8") -> List[str]:
    """
    Read a keyword file, one keyword per line.

    Line terminators (``\\n`` or ``\\r\\n``) are removed; a trailing newline
    at the end of the file does not produce an extra empty keyword.

    Raises:
        OSError: If the file cannot be opened or read
        UnicodeDecodeError: If the file is not valid text in ``encoding``
    """
    with open(path, "r", encoding=encoding, newline="") as f:
        return f.read().splitlines()
