import re
from typing import Any

SLUG_PATTERN : re.Pattern = re.compile(r'[a-z0-9-]+')
_HEADING_SEPARATORS : re.Pattern = re.compile(r'[\s\W-]+', re.ASCII)
_EDGE_HYPHENS : re.Pattern = re.compile(r'^-+|-+$')


def is_valid_slug(candidate:Any) -> bool:
    '''True when the whole candidate is made of lowercase letters, digits and hyphens.'''
    if not isinstance(candidate, str):
        return False
    return SLUG_PATTERN.fullmatch(candidate) is not None


def heading_slug(text:str) -> str:
    '''Anchor id for a heading: "Hello, World!" -> "hello-world".'''
    slug : str = _HEADING_SEPARATORS.sub('-', text.lower().strip())
    return _EDGE_HYPHENS.sub('', slug)
