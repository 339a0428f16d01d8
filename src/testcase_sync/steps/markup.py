"""Encode and decode the tracker's step markup.

The tracker stores test steps as an XML fragment inside a single work
item field::

    <steps id="0" last="2">
      <step id="1" type="ActionStep"><action>Open page</action><expected></expected></step>
      <step id="2" type="ValidateStep"><action>Submit</action><expected>Redirected</expected></step>
    </steps>

(shown indented; the encoder emits it on one line).

Encoding is exact: the five XML metacharacters are always written as
their named entities, because the tracker rejects or mis-renders raw
markup inside step text.

Decoding is tolerant, since the tracker's own serializer does not always
produce well-formed XML.  The policy:

* The ``<steps>`` container is optional.
* Unknown elements are skipped; their text is ignored unless they sit
  inside a recognised step child.
* An unclosed ``<step>`` is closed by the next ``<step>`` or end of input.
* Missing children default to empty text.
* Nothing raises.

Recognised children are ``action``/``description`` and
``expected``/``expectedResult``, plus the tracker's native pair of
``parameterizedString`` elements (first is the action, second the
expected result).
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum

from testcase_sync.document.models import Step
from testcase_sync.steps.identity import (
    StepIdMinter,
    default_minter,
    external_index,
    imported_id,
)

logger = logging.getLogger(__name__)

ACTION_STEP = "ActionStep"
VALIDATE_STEP = "ValidateStep"

# =============================================================================
# Escaping
# =============================================================================

_ESCAPES: dict[str, str] = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
}
_ESCAPE_RE = re.compile(r"[&<>\"']")


def escape_xml(text: str | None) -> str:
    """Replace ``& < > " '`` with their named XML entities."""
    if not text:
        return ""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], text)


def unescape_xml(text: str | None) -> str:
    """Reverse ``escape_xml``.

    Also accepts numeric character references and the HTML entities the
    tracker emits in step text.
    """
    if not text:
        return ""
    return html.unescape(text)


# =============================================================================
# Tokenizer
# =============================================================================


class TokenKind(str, Enum):
    """Kinds of markup token."""

    START = "start"
    END = "end"
    TEXT = "text"


@dataclass
class Token:
    """One markup token.

    Text tokens hold raw (still escaped) text unless ``cdata`` is set.
    """

    kind: TokenKind
    name: str = ""
    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ""
    self_closing: bool = False
    cdata: bool = False


_TAG_RE = re.compile(r"<(/?)([A-Za-z_][\w:.\-]*)([^<>]*?)(/?)>")
_ATTR_RE = re.compile(
    r"""([\w:.\-]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>/]+))"""
)


def _parse_attrs(raw: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for match in _ATTR_RE.finditer(raw):
        name = match.group(1)
        value = next(
            (g for g in match.groups()[1:] if g is not None), ""
        )
        attrs[name] = unescape_xml(value)
    return attrs


def tokenize(markup: str) -> Iterator[Token]:
    """Split *markup* into start, end and text tokens.

    Comments and processing instructions are dropped, CDATA sections
    become unescaped text, and a ``<`` that does not start a tag is
    emitted as text.  Never raises.
    """
    pos = 0
    length = len(markup)
    while pos < length:
        lt = markup.find("<", pos)
        if lt == -1:
            yield Token(TokenKind.TEXT, text=markup[pos:])
            return
        if lt > pos:
            yield Token(TokenKind.TEXT, text=markup[pos:lt])

        if markup.startswith("<!--", lt):
            end = markup.find("-->", lt + 4)
            if end == -1:
                return
            pos = end + 3
            continue

        if markup.startswith("<![CDATA[", lt):
            end = markup.find("]]>", lt + 9)
            if end == -1:
                yield Token(TokenKind.TEXT, text=markup[lt + 9:], cdata=True)
                return
            yield Token(TokenKind.TEXT, text=markup[lt + 9:end], cdata=True)
            pos = end + 3
            continue

        if markup.startswith("<?", lt):
            end = markup.find("?>", lt + 2)
            if end == -1:
                return
            pos = end + 2
            continue

        match = _TAG_RE.match(markup, lt)
        if match is None:
            yield Token(TokenKind.TEXT, text="<")
            pos = lt + 1
            continue

        closing, name, raw_attrs, slash = match.groups()
        if closing:
            yield Token(TokenKind.END, name=name)
        else:
            yield Token(
                TokenKind.START,
                name=name,
                attrs=_parse_attrs(raw_attrs),
                self_closing=bool(slash),
            )
        pos = match.end()


# =============================================================================
# Decoding
# =============================================================================

_ACTION_CHILDREN = frozenset({"action", "description"})
_EXPECTED_CHILDREN = frozenset({"expected", "expectedresult"})
_POSITIONAL_CHILD = "parameterizedstring"


@dataclass
class _RawStep:
    step_id: str | None
    action: str | None = None
    expected: str | None = None

    def assign(self, child: str, text: str) -> None:
        if child in _ACTION_CHILDREN:
            self.action = text
        elif child in _EXPECTED_CHILDREN:
            self.expected = text
        elif self.action is None:
            self.action = text
        elif self.expected is None:
            self.expected = text


def _collect_raw_steps(markup: str) -> list[_RawStep]:
    steps: list[_RawStep] = []
    current: _RawStep | None = None
    child: str | None = None
    buffer: list[str] = []

    def finish_child() -> None:
        nonlocal child
        if current is not None and child is not None:
            current.assign(child, "".join(buffer))
        child = None
        buffer.clear()

    def finish_step() -> None:
        nonlocal current
        finish_child()
        if current is not None:
            steps.append(current)
        current = None

    for token in tokenize(markup):
        name = token.name.lower()
        if token.kind is TokenKind.TEXT:
            if child is not None:
                buffer.append(
                    token.text if token.cdata else unescape_xml(token.text)
                )
            continue

        if token.kind is TokenKind.START:
            if name == "step":
                finish_step()
                current = _RawStep(step_id=token.attrs.get("id"))
                if token.self_closing:
                    finish_step()
                continue
            if current is None:
                continue
            if name in _ACTION_CHILDREN or name in _EXPECTED_CHILDREN or name == _POSITIONAL_CHILD:
                if child is not None:
                    finish_child()
                if token.self_closing:
                    # <description/> trails the tracker's own markup and
                    # must not clear an action already taken positionally
                    if name == _POSITIONAL_CHILD:
                        current.assign(name, "")
                else:
                    child = name
            continue

        # END token
        if name in ("step", "steps"):
            finish_step()
        elif child is not None and name == child:
            finish_child()

    finish_step()
    return steps


def decode_steps(
    markup: str | None, *, minter: StepIdMinter | None = None
) -> list[Step]:
    """Decode tracker step markup into ``Step`` records.

    A numeric ``id`` attribute becomes the imported stable id
    ``step_ado_{id}`` so that re-encoding writes the same index back.
    Steps without a usable id get a freshly minted identifier.

    Args:
        markup: Step markup fragment (may be empty or malformed).
        minter: Identifier source for steps without a tracker id.

    Returns:
        Steps numbered 1..N in document order.
    """
    if not markup:
        return []
    minter = minter or default_minter

    result: list[Step] = []
    for position, raw in enumerate(_collect_raw_steps(markup), start=1):
        raw_id = (raw.step_id or "").strip()
        if raw_id.isdigit():
            stable_id = imported_id(int(raw_id))
        else:
            logger.debug(
                "Step %d has no numeric id (%r); minting one",
                position,
                raw.step_id,
            )
            stable_id = minter.mint(position)
        result.append(
            Step(
                action=raw.action or "",
                expected_result=raw.expected or "",
                stable_id=stable_id,
                order=position,
            )
        )
    return result


# =============================================================================
# Encoding
# =============================================================================


def _assign_external_ids(steps: Sequence[Step]) -> list[int]:
    taken = {
        index
        for index in (external_index(s.stable_id) for s in steps)
        if index is not None
    }
    assigned: set[int] = set()
    ids: list[int] = []
    for position, step in enumerate(steps, start=1):
        index = external_index(step.stable_id)
        if index is None or index in assigned:
            index = position if position not in taken else max(taken) + 1
            taken.add(index)
        assigned.add(index)
        ids.append(index)
    return ids


def encode_steps(steps: Sequence[Step]) -> str:
    """Encode steps as the tracker's step markup fragment.

    Imported steps keep their tracker index.  Locally minted steps use
    their position, or the next free integer when that index is already
    claimed by another step in the batch.

    Only action and expected result are written; test data and
    attachments have no place in the markup.
    """
    if not steps:
        return '<steps id="0" last="0"></steps>'

    parts = [f'<steps id="0" last="{len(steps)}">']
    for step, step_id in zip(steps, _assign_external_ids(steps)):
        kind = VALIDATE_STEP if step.is_validation else ACTION_STEP
        parts.append(
            f'<step id="{step_id}" type="{kind}">'
            f"<action>{escape_xml(step.action)}</action>"
            f"<expected>{escape_xml(step.expected_result)}</expected>"
            "</step>"
        )
    parts.append("</steps>")
    return "".join(parts)


def is_steps_markup(value: str | None) -> bool:
    """Structural check for a step markup container."""
    if not value:
        return False
    return ("<steps" in value and "</steps>" in value) or (
        "<Steps>" in value and "</Steps>" in value
    )
