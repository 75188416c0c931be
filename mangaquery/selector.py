"""
支持 :icontains() 的 CSS 选择器。

soupsieve 只提供区分大小写的 :-soup-contains()。站点配置里大量使用
"包含某个词（忽略大小写）的元素" 来定位字段，例如 li:icontains(genre) > a，
因此这里把含 :icontains 的选择器拆成 组合器 + 复合选择器 逐级匹配，
复合选择器中的普通部分仍交给 soupsieve；不含 :icontains 的选择器直接走 soupsieve。

支持的组合器：后代（空格）、子代（>）、相邻兄弟（+）、通用兄弟（~），
:icontains 也可以出现在 :has(...) 的相对选择器中。
"""

import re
from functools import lru_cache
from typing import Iterable, List, NamedTuple, Optional, Tuple

import soupsieve as sv
from bs4 import Tag

ICONTAINS = ":icontains("
QUOTES = "\"'"
PSEUDO_CALL = re.compile(r":[\w-]+\(")


class Compound(NamedTuple):
    """一个复合选择器（不含组合器）。"""

    css: str  # 交给 soupsieve 匹配的部分，可为空
    words: Tuple[str, ...]  # :icontains 参数（已小写）
    has: Tuple[Tuple[Tuple["Step", ...], ...], ...]  # 含 :icontains 的 :has 参数


class Step(NamedTuple):
    """组合器与其右侧的复合选择器。"""

    combinator: str
    compound: Compound


def _scan(text: str):
    """逐字符遍历，返回 (下标, 字符, 是否处于顶层)。"""
    depth = 0
    quote = None
    for index, ch in enumerate(text):
        if quote:
            yield index, ch, False
            if ch == quote:
                quote = None
            continue
        if ch in QUOTES:
            quote = ch
            yield index, ch, False
            continue
        if ch in "([":
            depth += 1
            yield index, ch, False
            continue
        if ch in ")]":
            depth -= 1
            yield index, ch, False
            continue
        yield index, ch, depth == 0


@lru_cache(maxsize=1024)
def split_groups(selector: str) -> Tuple[str, ...]:
    """按顶层逗号拆分选择器，括号、方括号与引号内的逗号不拆。"""
    groups: List[str] = []
    start = 0
    for index, ch, top_level in _scan(selector):
        if ch == "," and top_level:
            groups.append(selector[start:index].strip())
            start = index + 1
    groups.append(selector[start:].strip())
    return tuple(group for group in groups if group)


def _closing_paren(text: str, start: int) -> int:
    """返回与 start 前左括号配对的右括号下标。"""
    depth = 1
    quote = None
    for index in range(start, len(text)):
        ch = text[index]
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return index
    raise ValueError(f"unbalanced parentheses in selector: {text!r}")


def _unquote(value: str) -> str:
    """去除参数两侧空白与引号。"""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in QUOTES:
        value = value[1:-1]
    return value


def _parse_compound(text: str) -> Compound:
    """拆出 :icontains 与含 :icontains 的 :has，其余保留为 CSS。"""
    css: List[str] = []
    words: List[str] = []
    has: List[Tuple[Tuple[Step, ...], ...]] = []
    lowered = text.lower()
    index = 0
    depth = 0
    quote = None
    while index < len(text):
        ch = text[index]
        if quote:
            if ch == quote:
                quote = None
        elif ch in QUOTES:
            quote = ch
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        elif ch == ":" and depth == 0:
            if lowered.startswith(ICONTAINS, index):
                start = index + len(ICONTAINS)
                end = _closing_paren(text, start)
                words.append(_unquote(text[start:end]).lower())
                index = end + 1
                continue
            if lowered.startswith(":has(", index):
                start = index + len(":has(")
                end = _closing_paren(text, start)
                inner = text[start:end]
                if ICONTAINS in inner.lower():
                    has.append(tuple(parse_group(group) for group in split_groups(inner)))
                    index = end + 1
                    continue
            call = PSEUDO_CALL.match(lowered, index)
            if call and ICONTAINS in lowered[call.end():_closing_paren(text, call.end())]:
                raise ValueError(f":icontains is only supported at top level or inside :has(): {text!r}")
        css.append(ch)
        index += 1
    return Compound(css="".join(css).strip(), words=tuple(words), has=tuple(has))


@lru_cache(maxsize=1024)
def parse_group(group: str) -> Tuple[Step, ...]:
    """把单个选择器组解析为步骤序列，允许以组合器开头（用于 :has）。"""
    steps: List[Step] = []
    combinator = " "
    start: Optional[int] = None
    for index, ch, top_level in _scan(group):
        if top_level and (ch.isspace() or ch in ">+~"):
            if start is not None:
                steps.append(Step(combinator, _parse_compound(group[start:index])))
                start = None
                combinator = " "
            if ch in ">+~":
                combinator = ch
            continue
        if start is None:
            start = index
    if start is not None:
        steps.append(Step(combinator, _parse_compound(group[start:])))
    if not steps:
        raise ValueError(f"empty selector: {group!r}")
    return tuple(steps)


@lru_cache(maxsize=1024)
def _compile(css: str):
    """编译并缓存 soupsieve 选择器。"""
    return sv.compile(css)


def _matches(node: Tag, compound: Compound) -> bool:
    """判断元素是否满足复合选择器。"""
    if compound.css and not _compile(compound.css).match(node):
        return False
    if compound.words:
        text = node.get_text(" ").lower()
        if any(word not in text for word in compound.words):
            return False
    for alternatives in compound.has:
        if not any(_evaluate(node, steps) for steps in alternatives):
            return False
    return True


def _candidates(node: Tag, combinator: str) -> Iterable[Tag]:
    """按组合器列出候选元素。"""
    if combinator == ">":
        return node.find_all(True, recursive=False)
    if combinator == "+":
        sibling = node.find_next_sibling(True)
        return [sibling] if sibling is not None else []
    if combinator == "~":
        return node.find_next_siblings(True)
    return node.find_all(True)


def _evaluate(context: Tag, steps: Tuple[Step, ...]) -> List[Tag]:
    """从 context 出发逐级匹配步骤。"""
    current = [context]
    for step in steps:
        found: List[Tag] = []
        seen = set()
        for node in current:
            for candidate in _candidates(node, step.combinator):
                if id(candidate) in seen:
                    continue
                if _matches(candidate, step.compound):
                    seen.add(id(candidate))
                    found.append(candidate)
        if not found:
            return []
        current = found
    return current


def _document_order(nodes: List[Tag]) -> List[Tag]:
    """按文档顺序排序并去重。"""
    if len(nodes) < 2:
        return nodes
    root = nodes[0]
    while root.parent is not None:
        root = root.parent
    positions = {id(node): index for index, node in enumerate(root.find_all(True))}
    unique = {id(node): node for node in nodes}
    return sorted(unique.values(), key=lambda node: positions.get(id(node), -1))


def select_group(node: Tag, group: str) -> List[Tag]:
    """匹配单个选择器组（不含顶层逗号）。"""
    if ICONTAINS not in group.lower():
        return list(node.select(group))
    return _document_order(_evaluate(node, parse_group(group)))


def select(node: Tag, selector: str) -> List[Tag]:
    """匹配完整选择器，逗号分隔的各组取并集，结果按文档顺序。"""
    if ICONTAINS not in selector.lower():
        return list(node.select(selector))
    matched: List[Tag] = []
    for group in split_groups(selector):
        matched.extend(select_group(node, group))
    return _document_order(matched)


def select_first(node: Tag, selector: str) -> Optional[Tag]:
    """返回第一个匹配元素。"""
    matched = select(node, selector)
    return matched[0] if matched else None


def validate_selector(selector: str) -> None:
    """提前解析并编译选择器，无效时抛出 ValueError。"""
    groups = split_groups(selector)
    if not groups:
        raise ValueError(f"empty selector: {selector!r}")
    for group in groups:
        try:
            if ICONTAINS in group.lower():
                for step in parse_group(group):
                    _validate_compound(step.compound)
            else:
                _compile(group)
        except sv.SelectorSyntaxError as exc:
            raise ValueError(f"invalid selector {group!r}: {exc}") from exc


def _validate_compound(compound: Compound) -> None:
    """编译复合选择器中交给 soupsieve 的部分，递归检查 :has。"""
    if compound.css:
        _compile(compound.css)
    for alternatives in compound.has:
        for steps in alternatives:
            for step in steps:
                _validate_compound(step.compound)
