"""Local document store: tree walk, encoding-aware read, plain write.

The vault is modelled as a tree of ``Directory`` and ``Document`` nodes.
``list_text_documents`` walks that tree and keeps the Markdown leaves;
paths are always posix-style and relative to the vault root, so they can
be mapped to object keys without caring about the host OS.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from charset_normalizer import from_bytes

from .errors import SyncFolderNotFoundError

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSION = "md"


# =============================================================================
# Tree model
# =============================================================================


@dataclass(frozen=True)
class Document:
    """A file leaf.  ``path`` is relative to the vault root."""

    path: str

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lstrip(".")


@dataclass(frozen=True)
class Directory:
    """A folder node.  ``path`` is relative to the vault root ("" for root)."""

    path: str
    children: tuple[Document | Directory, ...] = field(default_factory=tuple)


def scan_tree(vault_root: Path, rel_path: str = "") -> Directory:
    """Build the ``Directory`` tree rooted at *rel_path* inside *vault_root*.

    Children are sorted by name so walks are deterministic.  Hidden entries
    such as ``.trash`` and ``.obsidian`` are skipped, and symlinked
    directories are not followed.
    """
    base = vault_root / rel_path if rel_path else vault_root
    children: list[Document | Directory] = []
    for entry in sorted(base.iterdir(), key=lambda p: p.name):
        if entry.name.startswith("."):
            continue
        child_rel = (
            f"{rel_path}/{entry.name}" if rel_path else entry.name
        )
        if entry.is_dir():
            if entry.is_symlink():
                logger.debug("Not following symlinked directory %s", child_rel)
                continue
            children.append(scan_tree(vault_root, child_rel))
        elif entry.is_file():
            children.append(Document(path=child_rel))
    return Directory(path=rel_path, children=tuple(children))


def collect_documents(
    node: Document | Directory, extension: str = DOCUMENT_EXTENSION
) -> list[Document]:
    """Depth-first list of documents under *node* with *extension*."""
    match node:
        case Document() if node.extension == extension:
            return [node]
        case Document():
            return []
        case Directory():
            found: list[Document] = []
            for child in node.children:
                found.extend(collect_documents(child, extension))
            return found
        case _:
            raise TypeError(f"Unexpected tree node: {node!r}")


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file, decoding as UTF-8 when possible.

    Falls back to charset-normalizer detection for files that are not
    valid UTF-8 (legacy notes saved in a local code page).

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")
    logger.debug("Decoded %s as %s", path, result.encoding)
    return (str(result), result.encoding)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write content to a file, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


# =============================================================================
# Store
# =============================================================================


class LocalDocumentStore:
    """Read and write Markdown documents under a vault root.

    Args:
        vault_root: Directory that all document paths are relative to.
    """

    def __init__(self, vault_root: Path | str):
        self.vault_root = Path(vault_root).expanduser().resolve()

    def resolve(self, path: str) -> Path:
        """Absolute filesystem path for a vault-relative *path*.

        Raises:
            ValueError: If *path* escapes the vault root.
        """
        resolved = (self.vault_root / path).resolve()
        if not resolved.is_relative_to(self.vault_root):
            raise ValueError(
                f"Path is outside the vault: {path}"
            )
        return resolved

    def list_text_documents(self, root: str = "") -> list[Document]:
        """All Markdown documents under *root* (vault-relative).

        Raises:
            SyncFolderNotFoundError: If *root* is not an existing directory.
        """
        base = self.vault_root / root if root else self.vault_root
        if not base.is_dir():
            raise SyncFolderNotFoundError(root or str(self.vault_root))
        return collect_documents(scan_tree(self.vault_root, root))

    def read_document(self, path: str) -> str:
        content, _ = read_file_with_encoding(self.resolve(path))
        return content

    def write_document(self, path: str, content: str) -> None:
        """Create or overwrite *path*, creating parent folders."""
        written = write_file(self.resolve(path), content)
        logger.debug("Wrote %s (%d bytes)", path, written)
