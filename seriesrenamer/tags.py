"""Release-tag recognition for scene-style filenames.

Splits the noise that release groups append to a filename (resolution,
source, codec, audio, HDR, streaming service, language, edition and
group names) away from the human-readable part of the name.

Tags are only stripped from the *tail* of a name: everything from the
first unambiguous tag (``1080p``, ``x264``, ``HDTV`` ...) onwards.
Weaker tags (``REPACK``, ``AMZN`` ...) are accepted just before the
tail when written in upper case, so that episode titles such as
"The Final Countdown" or "Red" survive.
"""

import re

# ---------------------------------------------------------------------------
# Pattern groups
# ---------------------------------------------------------------------------

# Resolution / quality
_RESOLUTION = r'\b(480p|576p|720p|1080p|1080i|2160p|4320p|4[kK]|UHD|FHD|QHD)\b'

# Video codec (separators are already spaces when these run)
_CODEC = (
    r'\b(x[ .]?264|x[ .]?265|[hH][ .]?264|[hH][ .]?265|HEVC|AVC|XVID|DIVX|AV1|VP9'
    r'|MPEG[24]?|VC-?1)\b'
)

# Audio codec / channels
_AUDIO = (
    r'\b(AAC(?:[ .]?[257][ .][01])?|AC3|EAC3|E-AC-?3|DTS(?:-?HD)?|DTS-?X|TrueHD|Atmos'
    r'|DD[P+]?[ .]?[257][ .][01]|DDP?'
    r'|LPCM|FLAC|OPUS)\b'
)

# Source / rip type
_SOURCE = (
    r'\b(WEB[- ]?DL|WEBRip|WEB[- ]?Cap|WEB'
    r'|Blu[- ]?[Rr]ay|BDRip|BRRip|BDREMUX'
    r'|HDTV|HDRip|DVDRip|DVD[Rr]?|PDTV|SDTV|TVRip|VHSRip)\b'
)

# HDR / bit-depth
_HDR = r'\b(HDR10\+?|HDR|Dolby[- ]?Vision|HLG|10[- ]?bit|8[- ]?bit)\b'

# Streaming-service tags
_STREAMING = (
    r'\b(AMZN|NF|DSNP|HULU|ATVP|PMTP|PCOK|HMAX|STAN|iT|CRAV|MA|VUDU|CR'
    r'|APTV|MUBI)\b'
)

# Language / subtitle tags
_LANG = r'\b(Dual[- ]?Audio|MULTi[- ]?SUBS?|MULTi|SUB(?:BED|S)?|DUB(?:BED)?|VOSTFR)\b'

# Release / edition tags
_RELEASE = (
    r'\b(REPACK|PROPER|RERIP|REAL|EXTENDED|UNCUT|INTERNAL|READNFO'
    r'|REMUX|HYBRID|REMASTERED|COMPLETE|LIMITED|iNTERNAL)\b'
)

# Common scene release groups
_GROUPS = (
    r'\b(RARBG|ETTV|ETRG|EZTV|LOL|DIMENSION|KILLERS|FLEET|AVS|SVA|TBS'
    r'|NTb|NTG|CMRG|MeGusta|TIGOLE|GalaxyTV|pahe|iFT|FLUX|SiGMA|NOGRP'
    r'|PLAYWEB|BONSAI|GOSSIP)\b'
)

# Bracketed content  [anything]
_BRACKETS = re.compile(r'\[([^\]]*)\]')

# Parenthesised noise (parens containing known-tag keywords)
_PAREN_NOISE = re.compile(
    r'\(([^)]*(?:rip|sub|dub|720|1080|2160|x264|x265|hevc|bluray|web|hdr)[^)]*)\)',
    re.IGNORECASE,
)

# Trailing release group glued to a tag with a dash  ("x264-LOL")
_TRAILING_GROUP = re.compile(r'(?:^|[ ._])([^ ._\[\]]+)-([A-Za-z0-9]+)$')

# Unambiguous tags: the first one marks the start of the tail
_STRONG = re.compile(
    '|'.join([_RESOLUTION, _CODEC, _AUDIO, _SOURCE, _HDR]), re.IGNORECASE
)

# Tags only trusted next to the tail, or when written in upper case
_WEAK = re.compile(
    '|'.join([_STREAMING, _LANG, _RELEASE, _GROUPS]), re.IGNORECASE
)

_ALL_TAGS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (_RESOLUTION, _CODEC, _AUDIO, _SOURCE, _HDR,
                    _STREAMING, _LANG, _RELEASE, _GROUPS)
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_plain_word(text: str) -> bool:
    """True for ordinary words like "Web" or "web" that only look like tags."""
    return text.isalpha() and (text.istitle() or text.islower())


def _first_strong_tag(text: str) -> re.Match | None:
    for match in _STRONG.finditer(text):
        if not _is_plain_word(match.group(0)):
            return match
    return None


def _is_weak_tag(word: str) -> bool:
    if not (word.isupper() or any(ch.isdigit() for ch in word)):
        return False
    return bool(_WEAK.fullmatch(word) or _STRONG.fullmatch(word))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_bracket_tags(stem: str) -> tuple[str, set[str]]:
    """Pull ``[Group]`` and ``(WEB 1080p)`` style blocks out of *stem*.

    Returns:
        (remaining_stem, tags)
    """
    tags: set[str] = set()

    def _collect(match: re.Match) -> str:
        inner = match.group(1).strip()
        if inner:
            tags.add(inner)
        return ' '

    stem = _BRACKETS.sub(_collect, stem)
    stem = _PAREN_NOISE.sub(_collect, stem)
    return stem.strip(), tags


def extract_release_group(stem: str) -> tuple[str, str | None]:
    """Strip a scene group glued to a known tag (``...x264-LOL``).

    The group is only recognised when the token before the dash is itself
    a release tag, so hyphenated titles ("Spider-Man") are left alone.

    Returns:
        (remaining_stem, group_or_None)
    """
    match = _TRAILING_GROUP.search(stem)
    if not match:
        return stem, None
    if not _STRONG.fullmatch(match.group(1)) and not _WEAK.fullmatch(match.group(1)):
        return stem, None
    return stem[:match.start(2) - 1], match.group(2)


def split_tags(text: str) -> tuple[str, set[str]]:
    """Split separator-normalized *text* into a title part and tags.

    Returns:
        (title_text, tags) where *title_text* has the tag tail removed.
    """
    tags: set[str] = set()

    match = _first_strong_tag(text)
    if match:
        head, tail = text[:match.start()], text[match.start():]
        for pattern in _ALL_TAGS:
            for found in pattern.finditer(tail):
                tags.add(found.group(0).strip())
    else:
        head = text

    words = head.split()
    while words and _is_weak_tag(words[-1]):
        tags.add(words.pop())

    return ' '.join(words), tags


def tail_start(text: str) -> int:
    """Index of the first unambiguous tag in *text*, or ``len(text)``."""
    match = _first_strong_tag(text)
    return match.start() if match else len(text)
