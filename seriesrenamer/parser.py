"""Parser module for extracting episode identity from file names."""
import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path, PurePath

from .models import Confidence, ParsedName
from .tags import extract_bracket_tags, extract_release_group, split_tags, tail_start

log = logging.getLogger(__name__)


# Episode patterns (order matters - more specific first).  Each yields a
# season group and an episode group; the optional ``rest`` group holds
# the remainder of a multi-episode run.
_SXXEYY = re.compile(
    r'\bs(?P<season>\d{1,2})\s?e(?P<episode>\d{1,3})'
    r'(?P<rest>(?:\s?-\s?e\d{1,3}|-\d{1,3}|e\d{1,3})*)(?!\w)',
    re.IGNORECASE,
)
_NXNN = re.compile(
    r'\b(?P<season>\d{1,2})x(?P<episode>\d{1,3})'
    r'(?P<rest>(?:-(?:\d{1,2}x)?\d{1,3})*)\b',
    re.IGNORECASE,
)
_SEASON_EPISODE_WORDS = re.compile(
    r'\bseason\s?(?P<season>\d{1,2})\s?-?\s?episode\s?(?P<episode>\d{1,3})\b',
    re.IGNORECASE,
)
# Season marker followed by a bare episode number: "S02 05", "Season 2 - 05".
# A number that starts a tag ("10 bit", "2 ch") is not an episode.
_SEASON_BARE_EPISODE = re.compile(
    r'\b(?:s|season\s?)(?P<season>\d{1,2})\s(?:-\s)?(?:ep?\s?)?(?P<episode>\d{1,3})\b'
    r'(?![ -]?(?:bit|ch)\b)',
    re.IGNORECASE,
)
_SEASON_ONLY = re.compile(r'\b(?:s|season\s?)(?P<season>\d{1,2})\b', re.IGNORECASE)

EXPLICIT_PATTERNS = [_SXXEYY, _NXNN, _SEASON_EPISODE_WORDS, _SEASON_BARE_EPISODE]

# Combined SeasonEpisode code, e.g. "102" or "1012"
_COMBINED_CODE = re.compile(r'(?<![\w-])(\d{3,4})(?![\w-])')

# Longest expanded range; anything wider is probably a misread
MAX_EPISODE_RANGE = 30

MEDIA_EXTENSIONS = {
    '.mkv', '.mp4', '.avi', '.mov', '.wmv', '.flv', '.webm',
    '.m4v', '.mpg', '.mpeg', '.m2ts', '.ts', '.vob', '.ogm'
}


def normalize_separators(name: str) -> str:
    """Replace common separators with spaces."""
    # Replace dots and underscores with spaces
    normalized = re.sub(r'[._]', ' ', name)
    # Runs of dashes are separators; a single dash may be an episode range
    normalized = re.sub(r'--+', ' ', normalized)
    normalized = re.sub(r'\s+', ' ', normalized)
    return normalized.strip()


def clean_title(title: str) -> str:
    """Clean up a title fragment."""
    # Remove leading/trailing delimiters
    title = re.sub(r'^[\s\-:,]+|[\s\-:,]+$', '', title)
    # Remove empty parentheses or brackets
    title = re.sub(r'\(\s*\)|\[\s*\]', '', title)
    title = re.sub(r'\s+', ' ', title)
    return title.strip()


def _expand_episodes(first: int, rest: str) -> list[int]:
    """Turn ``E01`` + ``-E03`` / ``E02E03`` / ``-03`` into episode numbers."""
    episodes = [first]
    for match in re.finditer(r'(-)?\s?(?:\d{1,2}x|e)?(\d{1,3})', rest, re.IGNORECASE):
        number = int(match.group(2))
        previous = episodes[-1]
        if match.group(1) and previous < number <= previous + MAX_EPISODE_RANGE:
            episodes.extend(range(previous + 1, number + 1))
        else:
            episodes.append(number)
    return sorted(set(episodes))


def _find_explicit_marker(text: str) -> tuple[re.Match, int, list[int]] | None:
    for pattern in EXPLICIT_PATTERNS:
        match = pattern.search(text)
        if match:
            season = int(match.group('season'))
            first = int(match.group('episode'))
            rest = match.groupdict().get('rest') or ''
            return match, season, _expand_episodes(first, rest)
    return None


def _find_combined_code(text: str) -> tuple[re.Match, int, int] | None:
    """Find a ``SeasonEpisode`` code such as ``102`` in the non-tag part of *text*.

    Only accepted with a title before it, and never for things that read
    as years.
    """
    head = text[:tail_start(text)]
    for match in _COMBINED_CODE.finditer(head):
        if not clean_title(head[:match.start()]):
            continue
        digits = match.group(1)
        value = int(digits)
        if len(digits) == 4 and 1900 <= value <= 2099:
            continue
        season, episode = int(digits[:-2]), int(digits[-2:])
        if season == 0 or episode == 0:
            continue
        return match, season, episode
    return None


def parse_filename(filename: str | Path) -> ParsedName:
    """
    Parse a media filename and extract its episode identity.

    Never raises: input that carries no recognisable marker comes back
    with no season, no episodes, ``Confidence.LOW`` and the whole stem as
    ``extra_title``.

    Args:
        filename: File name or path to the media file

    Returns:
        ParsedName with extracted information
    """
    raw_filename = str(filename)
    stem = PurePath(raw_filename).stem

    name, tags = extract_bracket_tags(stem)
    name, group = extract_release_group(name)
    if group:
        tags.add(group)
    name = normalize_separators(name)

    season: int | None = None
    episodes: list[int] = []
    confidence = Confidence.LOW
    head, tail = name, ''

    explicit = _find_explicit_marker(name)
    if explicit:
        match, season, episodes = explicit
        head, tail = name[:match.start()], name[match.end():]
    else:
        combined = _find_combined_code(name)
        if combined:
            match, season, episode = combined
            episodes = [episode]
            head, tail = name[:match.start()], name[match.end():]
            confidence = Confidence.MEDIUM
        else:
            season_only = _SEASON_ONLY.search(name)
            if season_only:
                season = int(season_only.group('season'))
                head, tail = name[:season_only.start()], name[season_only.end():]

    if season is None:
        _, stray = split_tags(name)
        parsed = ParsedName(
            raw_filename=raw_filename,
            extra_title=stem,
            tags=frozenset(tags | stray),
        )
        log.debug("Unparseable: %r", raw_filename)
        return parsed

    head, head_tags = split_tags(head)
    tail, tail_tags = split_tags(tail)
    show_title_guess = clean_title(head) or None
    extra_title = clean_title(tail) or None

    if explicit and episodes and show_title_guess:
        confidence = Confidence.HIGH

    parsed = ParsedName(
        raw_filename=raw_filename,
        show_title_guess=show_title_guess,
        season=season,
        episodes=tuple(episodes),
        extra_title=extra_title,
        tags=frozenset(tags | head_tags | tail_tags),
        confidence=confidence,
    )
    log.debug(
        "Parsed %r: show=%r season=%s episodes=%s title=%r confidence=%s",
        raw_filename, parsed.show_title_guess, parsed.season,
        list(parsed.episodes), parsed.extra_title, parsed.confidence.value,
    )
    return parsed


def parse_all(
    filenames: list[str | Path],
    max_workers: int | None = None,
) -> list[ParsedName]:
    """
    Parse many filenames concurrently.

    Args:
        filenames: File names or paths
        max_workers: Thread pool size (None lets the executor decide)

    Returns:
        ParsedName list in the same order as *filenames*
    """
    results: list[ParsedName | None] = [None] * len(filenames)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(parse_filename, filename): index
            for index, filename in enumerate(filenames)
        }
        for future in as_completed(future_to_index):
            results[future_to_index[future]] = future.result()
    return results


def is_media_file(filepath: Path) -> bool:
    """Check if file is a media file based on extension."""
    return filepath.suffix.lower() in MEDIA_EXTENSIONS


def find_media_files(path: Path, recursive: bool = False) -> list[Path]:
    """
    Find all media files in a directory.

    Args:
        path: Directory or file path
        recursive: Whether to search recursively

    Returns:
        Sorted list of media file paths
    """
    if path.is_file():
        return [path] if is_media_file(path) else []

    if not path.is_dir():
        return []

    candidates = path.rglob("*") if recursive else path.iterdir()
    return sorted(item for item in candidates if item.is_file() and is_media_file(item))
