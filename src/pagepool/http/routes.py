"""
=============================================================================
ROUTE TABLE
=============================================================================

Maps request paths to files on disk. Built once at startup from a
directory scan, then only ever read.

=============================================================================
HOW ROUTES ARE DISCOVERED
=============================================================================

Given a site root like this:

    site/
    ├── pages/
    │   ├── index.html
    │   └── 404.html
    ├── components/
    │   └── button.html
    ├── src/            ← reserved name, skipped
    ├── target/         ← reserved name, skipped
    ├── .git/           ← name contains ".", skipped
    └── README.md       ← not a folder, skipped

the scan produces:

    ┌──────────────────┬──────────────────────────────────────┐
    │ Route key        │ Backing path                         │
    ├──────────────────┼──────────────────────────────────────┤
    │ /404.html        │ site/pages/404.html                  │
    │ /button.html     │ site/components/button.html          │
    │ /index.html      │ site/pages/index.html                │
    │ /                │ site/pages/index.html  (index alias) │
    └──────────────────┴──────────────────────────────────────┘

Only ONE level of folders is scanned, and the folder name is NOT part of
the route key. The key is just "/" + file name.

In flat mode (flat=True) the root itself is the only folder scanned.

=============================================================================
DUPLICATE FILE NAMES
=============================================================================

    site/a/page.html  →  /page.html
    site/b/page.html  →  /page.html   ← overwrites the first one

Folders are scanned in sorted order and the LAST one wins. This is the
defined behavior. If two folders must both expose page.html, give the
files different names.

=============================================================================
THREAD SAFETY
=============================================================================

After __init__ the table is never mutated. Every worker thread reads it
concurrently without a lock. The public `routes` view is a
MappingProxyType so callers cannot mutate it by accident either.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, List, Mapping, Optional, Tuple, Union


logger = logging.getLogger(__name__)


DEFAULT_RESERVED_NAMES = ("src", "target")

PathLike = Union[str, "os.PathLike[str]"]


class RouteNotFound(LookupError):
    """Raised by RouteTable.read() when a path has no route."""

    def __init__(self, path: str):
        super().__init__(f"No route for {path!r}")
        self.path = path


class ResourceReadFailure(OSError):
    """
    Raised when a routed file cannot be read.

    The file was there at scan time but is now missing, unreadable, or has
    turned into a directory. The original OSError is kept as __cause__.
    """

    def __init__(self, backing_path: str, reason: str):
        super().__init__(f"Cannot read {backing_path}: {reason}")
        self.backing_path = backing_path
        self.reason = reason


@dataclass(frozen=True)
class ResourceDescriptor:
    """What to serve for a matched route."""

    route_key: str
    backing_path: str

    def read(self) -> bytes:
        """
        Read the backing file from disk.

        Not cached: every request reads the file again, so edits show up
        without a restart.

        Raises:
            ResourceReadFailure: If the file cannot be read.
        """
        try:
            with open(self.backing_path, "rb") as f:
                return f.read()
        except OSError as e:
            raise ResourceReadFailure(self.backing_path, e.strerror or str(e)) from e


def scan_directory(
    root: PathLike,
    reserved_names: Iterable[str] = DEFAULT_RESERVED_NAMES,
    flat: bool = False,
) -> List[Tuple[str, str]]:
    """
    Discover servable files under a site root.

    Args:
        root: Site root directory.
        reserved_names: First-level folder names to skip (build output,
                        source trees). Names containing "." are always
                        skipped.
        flat: Serve the files directly inside root instead of the files
              inside its first-level folders.

    Returns:
        (route_key, backing_path) pairs in scan order. Later pairs win when
        keys collide.

    Unreadable directories are logged and skipped. A broken folder only
    costs its own routes; it never aborts startup.
    """
    root = Path(root)

    if flat:
        return _scan_folder(root)

    reserved = set(reserved_names)
    try:
        entries = sorted(os.scandir(root), key=lambda e: e.name)
    except OSError as e:
        logger.warning(f"Cannot scan site root {root}: {e}")
        return []

    pairs: List[Tuple[str, str]] = []
    for entry in entries:
        if entry.name in reserved or "." in entry.name:
            continue
        try:
            if not entry.is_dir():
                continue
        except OSError:
            continue
        pairs.extend(_scan_folder(Path(entry.path)))

    return pairs


def _scan_folder(folder: Path) -> List[Tuple[str, str]]:
    """Route every regular file directly inside one folder."""
    try:
        entries = sorted(os.scandir(folder), key=lambda e: e.name)
    except OSError as e:
        logger.warning(f"Cannot scan folder {folder}: {e}")
        return []

    pairs = []
    for entry in entries:
        try:
            if not entry.is_file():
                continue
        except OSError:
            continue
        pairs.append((f"/{entry.name}", entry.path))
    return pairs


class RouteTable:
    """
    Immutable mapping from route key to ResourceDescriptor.

    =========================================================================
    USAGE
    =========================================================================

        table = RouteTable.from_directory("./site")

        descriptor = table.resolve("/index.html")   # O(1), no I/O
        if descriptor is None:
            ...  # serve the not-found page

        body = table.read("/index.html")            # resolve + read
        # raises RouteNotFound or ResourceReadFailure

    Or build one by hand (tests, embedding):

        table = RouteTable({"/index.html": "pages/index.html"})

    =========================================================================
    """

    def __init__(
        self,
        routes: Union[Mapping[str, str], Iterable[Tuple[str, str]], None] = None,
    ):
        """
        Build the table.

        Args:
            routes: Mapping or iterable of (route_key, backing_path) pairs.
                    For duplicate keys the last pair wins.

        Raises:
            ValueError: If a route key does not start with "/".
        """
        if routes is None:
            pairs: Iterable[Tuple[str, str]] = ()
        elif isinstance(routes, Mapping):
            pairs = routes.items()
        else:
            pairs = routes

        table = {}
        for key, backing_path in pairs:
            if not key.startswith("/"):
                raise ValueError(f"Route key must start with '/': {key!r}")
            if key in table:
                logger.debug(
                    f"Route {key} now served from {backing_path} "
                    f"(was {table[key].backing_path})"
                )
            table[key] = ResourceDescriptor(key, os.fspath(backing_path))

        self._routes = table
        self._view = MappingProxyType(table)

    @classmethod
    def from_directory(
        cls,
        root: PathLike,
        reserved_names: Iterable[str] = DEFAULT_RESERVED_NAMES,
        flat: bool = False,
        index_file: Optional[str] = "index.html",
    ) -> "RouteTable":
        """
        Scan a site root and build the table.

        If index_file is routed, "/" is added as an alias for it.
        """
        pairs = scan_directory(root, reserved_names=reserved_names, flat=flat)

        if index_file:
            index_key = f"/{index_file}"
            # The alias must follow the winning entry for the index key
            index_path = None
            for key, path in pairs:
                if key == index_key:
                    index_path = path
            if index_path is not None:
                pairs.append(("/", index_path))

        table = cls(pairs)
        logger.info(f"Loaded {len(table)} routes from {root}")
        return table

    @property
    def routes(self) -> Mapping[str, ResourceDescriptor]:
        """Read-only view of the table."""
        return self._view

    def resolve(self, path: str) -> Optional[ResourceDescriptor]:
        """Look up a route key. Returns None on a miss."""
        return self._routes.get(path)

    def read(self, path: str) -> bytes:
        """
        Resolve a path and read its file.

        Raises:
            RouteNotFound: If the path has no route.
            ResourceReadFailure: If the backing file cannot be read.
        """
        descriptor = self._routes.get(path)
        if descriptor is None:
            raise RouteNotFound(path)
        return descriptor.read()

    def __contains__(self, path: object) -> bool:
        return path in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._routes)

    def __repr__(self) -> str:
        return f"RouteTable({len(self)} routes)"
