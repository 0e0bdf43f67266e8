"""aria2 input-file export of a directory tree."""

import logging
import os
import stat
from pathlib import Path
from typing import Union
from urllib.parse import quote

from dirserve.core.errors import NotADirectory, translate_os_error
from dirserve.services import path_resolver

logger = logging.getLogger(__name__)


def _download_url(base_url: str, parts: list[str]) -> str:
    return f"{base_url.rstrip('/')}/dl/" + "/".join(quote(part, safe="") for part in parts)


class Aria2Exporter:
    """Builds aria2c input files (one URL block per file) for a directory tree."""

    def __init__(self, data_root: Union[str, Path], base_url: str):
        self.data_root = Path(data_root).resolve()
        self.base_url = base_url

    def export(self, relative_path: str) -> str:
        """
        Describe every file below a directory in aria2c input-file format.

        Files of a directory come before its subdirectories, both in
        case-insensitive name order. Unreadable entries are left out.

        Args:
            relative_path: URL-decoded client path of the directory

        Returns:
            aria2c input file contents
        """
        parts = path_resolver.split_relative_path(relative_path)
        directory = path_resolver.resolve(self.data_root, relative_path)
        if not directory.is_dir():
            raise NotADirectory(f"Not a directory: {relative_path}", path=relative_path)

        blocks: list[str] = []
        self._collect(directory, parts, [], blocks, frozenset(), top_level=True)
        logger.info(f"aria2 export of '{'/'.join(parts) or '/'}': {len(blocks)} files")
        return "".join(blocks)

    def _collect(
        self,
        directory: Path,
        url_parts: list[str],
        rel_parts: list[str],
        blocks: list[str],
        ancestors: frozenset,
        top_level: bool = False,
    ) -> None:
        try:
            st = os.stat(directory)
            with os.scandir(directory) as it:
                children = [(child.name, Path(child.path)) for child in it]
        except OSError as e:
            if top_level:
                raise translate_os_error(e, "/".join(url_parts)) from e
            logger.warning(f"Skipping '{directory}' in aria2 export: {e}")
            return

        key = (st.st_dev, st.st_ino)
        if key in ancestors:
            return

        files = []
        subdirs = []
        for name, path in children:
            if not path_resolver.is_portable_name(name):
                logger.warning(f"Skipping {name!r} in aria2 export: name is not valid UTF-8")
                continue
            try:
                if path_resolver.escapes_root(self.data_root, path):
                    continue
                mode = os.stat(path).st_mode
            except (OSError, RuntimeError) as e:
                logger.debug(f"Skipping '{name}' in aria2 export: {e}")
                continue
            if stat.S_ISREG(mode):
                files.append(name)
            elif stat.S_ISDIR(mode):
                subdirs.append(name)

        out_dir = "/".join(rel_parts) or "."
        for name in sorted(files, key=lambda n: (n.casefold(), n)):
            url = _download_url(self.base_url, url_parts + [name])
            blocks.append(f"{url}\n  dir={out_dir}\n  out={name}\n\n")

        for name in sorted(subdirs, key=lambda n: (n.casefold(), n)):
            self._collect(directory / name, url_parts + [name], rel_parts + [name], blocks, ancestors | {key})
