import re
from dataclasses import dataclass
from typing import Optional
from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound
from errors import InternalError
from models import PostFormat
from slugs import heading_slug

MARKDOWN_TITLE : re.Pattern = re.compile(r'^#\s+(.+)$', re.MULTILINE)
MARKDOWN_DESCRIPTION : re.Pattern = re.compile(r'^(?!#)(.+)$', re.MULTILINE)
HTML_TITLE : re.Pattern = re.compile(r'<h1[^>]*>(.*?)</h1>', re.IGNORECASE)
HTML_TAG : re.Pattern = re.compile(r'<[^>]*>?')


@dataclass(frozen=True)
class RendererConfig:
    '''Markdown engine options. Built once at startup and shared read-only.'''
    html : bool = False
    linkify : bool = True
    typographer : bool = True
    breaks : bool = False
    highlight : bool = True
    anchor_min_level : int = 1
    anchor_max_level : int = 6
    description_length : int = 160


@dataclass(frozen=True)
class RenderedOutput:
    html : str
    title : str
    description : str


def highlight_code(code:str, lang:str, _attrs:str) -> str:
    '''Pygments highlighting for fenced code; an empty string means "escape it yourself".'''
    if not lang:
        return ''
    try:
        lexer = get_lexer_by_name(lang)
    except ClassNotFound:
        return ''
    try:
        return highlight(code, lexer, HtmlFormatter(nowrap=True))
    except Exception:
        return ''


def markdown_title(content:str) -> Optional[str]:
    match : Optional[re.Match] = MARKDOWN_TITLE.search(content)
    return match.group(1).strip() if match else None


def html_title(content:str) -> Optional[str]:
    match : Optional[re.Match] = HTML_TITLE.search(content)
    if not match:
        return None
    return HTML_TAG.sub('', match.group(1)).strip()


class ContentRenderer:
    '''Turns stored post content into HTML plus the title and description shown around it.'''

    def __init__(self, config:RendererConfig = RendererConfig()) -> None:
        self.config : RendererConfig = config
        options : dict = {
            'html': config.html,
            'linkify': config.linkify,
            'typographer': config.typographer,
            'breaks': config.breaks,
        }
        if config.highlight:
            options['highlight'] = highlight_code
        self._md : MarkdownIt = MarkdownIt('js-default', options)
        self._md.use(
            anchors_plugin,
            min_level=config.anchor_min_level,
            max_level=config.anchor_max_level,
            slug_func=heading_slug,
            permalink=False,
        )

    def render_markdown(self, content:str) -> str:
        return self._md.render(content)

    def derive_title(self, content:str, post_format:str, fallback:str) -> str:
        title : Optional[str] = None
        if post_format == PostFormat.HTML:
            title = html_title(content)
        else:
            title = markdown_title(content)
        return title or fallback

    def derive_description(self, content:str, title:str) -> str:
        match : Optional[re.Match] = MARKDOWN_DESCRIPTION.search(content)
        if not match:
            return title
        return match.group(1).strip()[:self.config.description_length]

    def _render_or_fail(self, content:str, message:str) -> str:
        try:
            return self.render_markdown(content)
        except Exception as exc:
            raise InternalError(message) from exc

    def render(self, content:str, post_format:str, fallback_title:str) -> RenderedOutput:
        '''Render content and derive its title and description in one pass.

        Raw HTML posts are returned verbatim and unsanitized; their description is the title.
        Any failure inside the markdown engine surfaces as InternalError.
        '''
        title : str = self.derive_title(content, post_format, fallback_title)
        if post_format == PostFormat.HTML:
            return RenderedOutput(html=content, title=title, description=title)
        return RenderedOutput(
            html=self._render_or_fail(content, 'Error loading post'),
            title=title,
            description=self.derive_description(content, title),
        )

    def preview(self, content:str, post_format:Optional[str]) -> str:
        if post_format == PostFormat.HTML:
            return content
        return self._render_or_fail(content, 'Failed to preview markdown')
