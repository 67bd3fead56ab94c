import os
import re
import logging
from pathlib import Path
from typing import List, Union

logger = logging.getLogger(__name__)

# Ant's DirectoryScanner default excludes (VCS metadata, editor droppings)
DEFAULT_EXCLUDES = [
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    "**/SCCS",
    "**/SCCS/**",
    "**/vssver.scc",
    "**/.svn",
    "**/.svn/**",
    "**/.DS_Store",
    "**/.git",
    "**/.git/**",
    "**/.gitattributes",
    "**/.gitignore",
    "**/.gitmodules",
    "**/.hg",
    "**/.hg/**",
    "**/.hgignore",
    "**/.hgsub",
    "**/.hgsubstate",
    "**/.hgtags",
    "**/.bzr",
    "**/.bzr/**",
    "**/.bzrignore",
]


def split_patterns(patterns: str) -> List[str]:
    """
    Splits an include string into its sub-patterns.
    Commas and whitespace both separate, as in Ant's `includes` attribute.
    """
    return [p for p in re.split(r"[,\s]+", patterns or "") if p]


def _normalize(pattern: str) -> str:
    pattern = pattern.replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    pattern = pattern.lstrip("/")
    if pattern.endswith("/"):
        pattern += "**"
    return pattern


def _segment_to_regex(segment: str) -> str:
    parts = []
    for ch in segment:
        if ch == "*":
            # a run of stars inside one segment is still a single `*`
            if not parts or parts[-1] != "[^/]*":
                parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(ch))
    return "".join(parts)


def glob_to_regex(pattern: str, case_sensitive: bool = True) -> re.Pattern:
    """
    Translates one Ant-style pattern into a compiled regex over '/'-separated
    relative paths. `*` and `?` stay inside a segment, `**` spans segments.
    """
    segments = _normalize(pattern).split("/")
    regex_parts = []
    last = len(segments) - 1
    for i, segment in enumerate(segments):
        if segment == "**":
            regex_parts.append(".*" if i == last else "(?:.*/)?")
        else:
            regex_parts.append(_segment_to_regex(segment) + ("" if i == last else "/"))
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile("".join(regex_parts), flags)


def _matches_any(rel_path: str, patterns: List[re.Pattern]) -> bool:
    return any(p.fullmatch(rel_path) for p in patterns)


def enumerate_files(
    root: Union[str, Path],
    include_pattern: str,
    default_excludes: bool = True,
    case_sensitive: bool = True,
) -> List[str]:
    """
    Resolves the include pattern against `root`.
    Returns relative '/'-separated paths of regular files, in a stable order:
    per directory, files by name first, then sub-directories by name.
    Symlinked directories are followed; a link back into its own ancestry is not.
    An empty list is a legitimate answer; deciding what it means is up to the caller.
    """
    root = Path(root)
    includes = [glob_to_regex(p, case_sensitive) for p in split_patterns(include_pattern)]
    excludes = [glob_to_regex(p, case_sensitive) for p in DEFAULT_EXCLUDES] if default_excludes else []

    if not includes:
        return []

    matched = []
    # real paths of each walked directory and its ancestors, to break symlink loops
    chains = {os.fspath(root): (os.path.realpath(root),)}
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        prefix = "" if rel_dir == "." else rel_dir + "/"
        chain = chains.pop(dirpath, ())

        kept = []
        for d in sorted(dirnames):
            # directories whose whole subtree is excluded are not descended into
            if _matches_any(prefix + d + "/", excludes):
                continue
            child = os.path.join(dirpath, d)
            real = os.path.realpath(child)
            if real in chain:
                logger.debug(f"Skipping symlink loop {child} -> {real}")
                continue
            chains[child] = chain + (real,)
            kept.append(d)
        dirnames[:] = kept

        for name in sorted(filenames):
            rel_path = prefix + name
            if not _matches_any(rel_path, includes):
                continue
            if _matches_any(rel_path, excludes):
                continue
            matched.append(rel_path)

    logger.debug(f"Pattern '{include_pattern}' under {root} resolved to {len(matched)} file(s)")
    return matched
