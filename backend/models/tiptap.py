"""TipTap node grammar: the closed set of node and mark types the editor accepts."""
import re
from enum import Enum
from typing import Callable, Iterator, NamedTuple


class NodeType(str, Enum):
    DOC = "doc"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    TEXT = "text"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"
    LIST_ITEM = "listItem"
    TABLE = "table"
    TABLE_ROW = "tableRow"
    TABLE_HEADER = "tableHeader"
    TABLE_CELL = "tableCell"
    BLOCKQUOTE = "blockquote"
    CODE_BLOCK = "codeBlock"
    HORIZONTAL_RULE = "horizontalRule"
    HARD_BREAK = "hardBreak"
    MEDIA_VIEW = "mediaView"
    YOUTUBE = "youtube"


class MarkType(str, Enum):
    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    STRIKE = "strike"
    CODE = "code"
    LINK = "link"
    HIGHLIGHT = "highlight"
    SUBSCRIPT = "subscript"
    SUPERSCRIPT = "superscript"
    TEXT_STYLE = "textStyle"


class GrammarEntry(NamedTuple):
    name: str
    description: str
    example: str


PLACEHOLDER_PREFIX = "IMAGE_PLACEHOLDER_"
PLACEHOLDER_PATTERN = re.compile(r"IMAGE_PLACEHOLDER_(\d+)")


def placeholder_token(index: int) -> str:
    return f"{PLACEHOLDER_PREFIX}{index}"


NODE_GRAMMAR: list[GrammarEntry] = [
    GrammarEntry(
        NodeType.HEADING.value,
        "Headings (level 1-4), supports textAlign attr",
        '{"type":"heading","attrs":{"level":1,"textAlign":"left"},"content":[{"type":"text","text":"Heading text"}]}',
    ),
    GrammarEntry(
        NodeType.PARAGRAPH.value,
        "Regular paragraphs, supports textAlign attr",
        '{"type":"paragraph","attrs":{"textAlign":"left"},"content":[{"type":"text","text":"Paragraph text"}]}',
    ),
    GrammarEntry(
        NodeType.BULLET_LIST.value,
        "Unordered lists",
        '{"type":"bulletList","content":[{"type":"listItem","content":[{"type":"paragraph","content":[{"type":"text","text":"Item"}]}]}]}',
    ),
    GrammarEntry(
        NodeType.ORDERED_LIST.value,
        "Numbered lists",
        '{"type":"orderedList","content":[{"type":"listItem","content":[{"type":"paragraph","content":[{"type":"text","text":"Item"}]}]}]}',
    ),
    GrammarEntry(
        NodeType.TABLE.value,
        "Tables",
        '{"type":"table","content":[{"type":"tableRow","content":[{"type":"tableHeader","content":[{"type":"paragraph","content":[{"type":"text","text":"Header"}]}]}]},'
        '{"type":"tableRow","content":[{"type":"tableCell","content":[{"type":"paragraph","content":[{"type":"text","text":"Cell"}]}]}]}]}',
    ),
    GrammarEntry(
        NodeType.BLOCKQUOTE.value,
        "Quotes/callouts",
        '{"type":"blockquote","content":[{"type":"paragraph","content":[{"type":"text","text":"Quote"}]}]}',
    ),
    GrammarEntry(
        NodeType.CODE_BLOCK.value,
        "Code blocks",
        '{"type":"codeBlock","attrs":{"language":"javascript"},"content":[{"type":"text","text":"code"}]}',
    ),
    GrammarEntry(NodeType.HORIZONTAL_RULE.value, "Dividers", '{"type":"horizontalRule"}'),
    GrammarEntry(NodeType.HARD_BREAK.value, "Line breaks", '{"type":"hardBreak"}'),
    GrammarEntry(
        NodeType.MEDIA_VIEW.value,
        "Images, videos, audio, documents (custom extension)",
        '{"type":"mediaView","attrs":{"assetId":"IMAGE_PLACEHOLDER_0","asset":{"url":"","caption":"","media":null},'
        '"display":{"width":"100%","height":null,"align":"center","aspectRatio":null}}}',
    ),
    GrammarEntry(
        NodeType.YOUTUBE.value,
        "YouTube video embeds",
        '{"type":"youtube","attrs":{"src":"https://www.youtube.com/watch?v=VIDEO_ID","width":640,"height":480}}',
    ),
]

MARK_GRAMMAR: list[GrammarEntry] = [
    GrammarEntry(MarkType.BOLD.value, "Bold text", '{"type":"text","marks":[{"type":"bold"}],"text":"bold text"}'),
    GrammarEntry(MarkType.ITALIC.value, "Italic text", '{"type":"text","marks":[{"type":"italic"}],"text":"italic text"}'),
    GrammarEntry(MarkType.UNDERLINE.value, "Underlined text", '{"type":"text","marks":[{"type":"underline"}],"text":"underlined"}'),
    GrammarEntry(MarkType.STRIKE.value, "Strikethrough text", '{"type":"text","marks":[{"type":"strike"}],"text":"strikethrough"}'),
    GrammarEntry(MarkType.CODE.value, "Inline code", '{"type":"text","marks":[{"type":"code"}],"text":"code"}'),
    GrammarEntry(
        MarkType.LINK.value,
        "Hyperlinks",
        '{"type":"text","marks":[{"type":"link","attrs":{"href":"url","target":"_blank"}}],"text":"link text"}',
    ),
    GrammarEntry(
        MarkType.HIGHLIGHT.value,
        "Highlighted text",
        '{"type":"text","marks":[{"type":"highlight","attrs":{"color":"#ffeb3b"}}],"text":"highlighted"}',
    ),
    GrammarEntry(MarkType.SUBSCRIPT.value, "Subscript", '{"type":"text","marks":[{"type":"subscript"}],"text":"sub"}'),
    GrammarEntry(MarkType.SUPERSCRIPT.value, "Superscript", '{"type":"text","marks":[{"type":"superscript"}],"text":"super"}'),
    GrammarEntry(
        MarkType.TEXT_STYLE.value,
        "Text color/styling",
        '{"type":"text","marks":[{"type":"textStyle","attrs":{"color":"#ff0000"}}],"text":"colored text"}',
    ),
]


def iter_nodes(node: dict) -> Iterator[dict]:
    """Depth-first pre-order walk over a node and every node in its `content`."""
    if not isinstance(node, dict):
        return
    yield node
    children = node.get("content")
    if isinstance(children, list):
        for child in children:
            yield from iter_nodes(child)


def visit(node: dict, visitor: Callable[[dict], None], node_type: NodeType | None = None) -> None:
    """Apply `visitor` to every node, or only to nodes of `node_type` when given."""
    for current in iter_nodes(node):
        if node_type is None or current.get("type") == node_type.value:
            visitor(current)


def referenced_placeholder_indices(tree: dict) -> set[int]:
    """Image indices referenced by mediaView placeholders anywhere in the tree."""
    indices = set()
    for node in iter_nodes(tree):
        if node.get("type") != NodeType.MEDIA_VIEW.value:
            continue
        asset_id = (node.get("attrs") or {}).get("assetId")
        if isinstance(asset_id, str):
            match = PLACEHOLDER_PATTERN.search(asset_id)
            if match:
                indices.add(int(match.group(1)))
    return indices
