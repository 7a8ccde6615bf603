import os
from pathlib import Path
from typing import Iterable, Iterator, Optional, Set

HTML_EXTS = {".html"}

def read_text_file(path) -> str:
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()

def normalize_path(path, base_dir: Optional[Path] = None) -> Path:
    """Absolute, normalized path; `..` is collapsed lexically, symlinks are kept."""
    p = Path(path)
    if not p.is_absolute() and base_dir is not None:
        p = Path(base_dir) / p
    return Path(os.path.normpath(os.path.abspath(p)))

def iter_html_files(roots: Iterable, exclude: Optional[Set[Path]] = None, skip_subdirs: bool = False) -> Iterator[Path]:
    """
    Yield the HTML files under the given files/directories in a stable order.

    Excluded entries may be files or directories. With `skip_subdirs`, only the
    files directly inside each root directory are visited.
    """
    exclude = {normalize_path(p) for p in (exclude or ())}
    for root in roots:
        root = normalize_path(root)
        if root in exclude:
            continue
        if root.is_file():
            if root.suffix.lower() in HTML_EXTS:
                yield root
            continue
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            if skip_subdirs:
                dirnames[:] = []
            else:
                dirnames[:] = sorted(d for d in dirnames if current / d not in exclude)
            for fn in sorted(filenames):
                p = current / fn
                if p in exclude:
                    continue
                if os.path.splitext(fn)[1].lower() in HTML_EXTS and p.is_file():
                    yield p

