import os
from pathlib import Path
from typing import Iterable

from ..paths import join_relative


class ExclusionFilter:
    """
    Decides whether a subdirectory must be left out of the index.

    Folder rules are matched by kind:
      - '/abs/path'  : the directory's absolute path must equal the rule
      - 'rel/path'   : the path relative to the library root must equal the rule
      - 'name'       : the directory's own name must equal the rule
    File rules exclude a directory that directly contains a file of that name (e.g. '.ignore').
    """

    def __init__(self, exclude_folders: Iterable[str] = (), exclude_files: Iterable[str] = ()):
        self.exclude_folders = tuple(exclude_folders)
        self.exclude_files = tuple(exclude_files)

    @property
    def is_empty(self) -> bool:
        return not self.exclude_folders and not self.exclude_files

    def should_exclude(self, name: str, relative_parent: str, absolute_parent: Path) -> bool:
        if self.is_empty:
            return False

        absolute_name = os.path.normpath(os.path.join(str(absolute_parent), name))
        relative_name = join_relative(relative_parent, name)

        for rule in self.exclude_folders:
            if rule.startswith('/'):
                if os.path.normpath(rule) == absolute_name:
                    return True
            elif '/' in rule:
                if join_relative('.', rule) == relative_name:
                    return True
            elif rule == name:
                return True

        for marker in self.exclude_files:
            # os.path.exists reports unreadable entries as missing
            if os.path.exists(os.path.join(absolute_name, marker)):
                return True

        return False
