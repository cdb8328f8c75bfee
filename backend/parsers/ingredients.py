import html as html_lib
import re
from dataclasses import dataclass, field

from models.types import Ingredient

_LIST_TAG_RE = re.compile(r"<(/?)(ul|ol|li)\b[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")
_EMPHASIS_RE = re.compile(r"^<(em|i)\b[^>]*>.*</\1>$", re.IGNORECASE | re.DOTALL)

_OPENERS = {"(": ")", "[": "]"}
_CLOSERS = {")", "]"}


def clean_text(fragment: str) -> str:
    text = html_lib.unescape(_TAG_RE.sub(" ", fragment))
    return _WHITESPACE_RE.sub(" ", text).strip().strip(",").strip()


@dataclass
class _OpenItem:
    list_depth: int
    raw: list[str] = field(default_factory=list)
    children: list[Ingredient] = field(default_factory=list)


def parse_ingredient_list(markup: str) -> list[Ingredient]:
    """Build an ingredient tree from nested ``<ul>/<li>`` markup in one pass.

    Only list tags are tokenized. ``lists`` is the stack of child lists being
    filled and ``items`` the stack of open ``<li>`` elements; an item's own text
    is everything seen while no nested list of it is open. A missing ``</li>``
    is closed by the next sibling ``<li>`` or by the enclosing ``</ul>``.
    """
    root: list[Ingredient] = []
    lists: list[list[Ingredient]] = [root]
    items: list[_OpenItem] = []

    def close_item() -> None:
        item = items.pop()
        own = "".join(item.raw).strip()
        name = clean_text(own)
        if not name and not item.children:
            return
        lists[item.list_depth - 1].append(
            Ingredient(
                name=name,
                is_note=bool(_EMPHASIS_RE.match(own)),
                children=item.children or None,
            )
        )

    pos = 0
    for match in _LIST_TAG_RE.finditer(markup):
        if items and items[-1].list_depth == len(lists):
            items[-1].raw.append(markup[pos : match.start()])
        pos = match.end()

        closing = match.group(1) == "/"
        tag = match.group(2).lower()

        if tag == "li":
            if items and items[-1].list_depth == len(lists):
                close_item()
            if not closing:
                items.append(_OpenItem(list_depth=len(lists)))
        elif not closing:
            if items and items[-1].list_depth == len(lists):
                lists.append(items[-1].children)
        else:
            if items and items[-1].list_depth == len(lists):
                close_item()
            if len(lists) > 1:
                lists.pop()

    if items and items[-1].list_depth == len(lists):
        items[-1].raw.append(markup[pos:])
    while items:
        while len(lists) > items[-1].list_depth:
            lists.pop()
        close_item()

    return root


def parse_ingredient_text(text: str) -> list[Ingredient]:
    """Split a flat ingredient statement on top-level commas.

    A parenthetical (or bracketed) group becomes the children of the token
    right before it, so ``"Cheese (milk, enzymes)"`` is one ingredient with
    two children. Tokens starting with ``*`` are notes.
    """
    root: list[Ingredient] = []
    levels: list[list[Ingredient]] = [root]
    closers: list[str] = []
    buffer: list[str] = []

    def flush() -> Ingredient | None:
        name = clean_text("".join(buffer))
        buffer.clear()
        if not name:
            return None
        node = Ingredient(name=name, is_note=name.startswith("*"))
        levels[-1].append(node)
        return node

    for char in text:
        if char == ",":
            flush()
        elif char in _OPENERS:
            parent = flush()
            if parent is None and levels[-1]:
                parent = levels[-1][-1]
            if parent is None:
                parent = Ingredient(name="")
                levels[-1].append(parent)
            parent.children = parent.children or []
            levels.append(parent.children)
            closers.append(_OPENERS[char])
        elif char in _CLOSERS and closers:
            flush()
            levels.pop()
            closers.pop()
        else:
            buffer.append(char)
    flush()

    return _prune(root)


def _prune(nodes: list[Ingredient]) -> list[Ingredient]:
    """Hoist children of unnamed placeholders and drop empty child lists."""
    pruned: list[Ingredient] = []
    for node in nodes:
        children = _prune(node.children) if node.children else []
        if not node.name:
            pruned.extend(children)
            continue
        node.children = children or None
        pruned.append(node)
    return pruned


def flatten_ingredients(ingredients: list[Ingredient]) -> str:
    """Comma-joined names in depth-first order, skipping notes and their subtrees."""
    parts: list[str] = []

    def walk(nodes: list[Ingredient]) -> None:
        for node in nodes:
            if node.is_note:
                continue
            if node.name:
                parts.append(node.name)
            if node.children:
                walk(node.children)

    walk(ingredients)
    return ", ".join(parts)
