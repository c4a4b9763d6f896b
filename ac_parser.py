import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from adf_renderer import RichNode, render

logger = logging.getLogger(__name__)

PENDING = "pending"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"
STATUSES = (PENDING, IN_PROGRESS, COMPLETED)

DEFAULT_KEY_PREFIX = "FIELD"

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
GIVEN_KW = re.compile(r"^\s*GIVEN\b[:\s]*", re.I)
WHEN_KW = re.compile(r"\bWHEN\b", re.I)
THEN_KW = re.compile(r"\bTHEN\b", re.I)
LIST_MARKER = re.compile(r"^(?:\d+\.|[*\-])")
LEADING_MARKERS = re.compile(r"^(?:(?:\d+\.|[*\-])\s*)+")
MODAL_CUE = re.compile(r"(?:should|must|will|shall|can|able to)", re.I)
AC_TOKENS = re.compile(r"AC|Acceptance Criteri(?:a|on)", re.I)
MARKER_SEQUENCE = tuple(re.compile(w, re.I) for w in ("Given", "When", "Then"))
MIN_LINE_LENGTH = 10


@dataclass(frozen=True)
class Criterion:
    id: str
    criterion: str
    status: str = PENDING
    test_cases: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if self.status not in STATUSES:
            raise ValueError(f"Unknown criterion status: {self.status!r}")

    def to_dict(self):
        d = {"id": self.id, "criterion": self.criterion, "status": self.status}
        if self.test_cases is not None:
            d["testCases"] = list(self.test_cases)
        return d


@dataclass(frozen=True)
class ExtractionInput:
    text: str
    explicit: Optional[Sequence[str]] = None


class CriterionIdAllocator:
    """Hands out AC-1, AC-2, ... for one extraction run."""

    def __init__(self, prefix="AC"):
        self.prefix = prefix
        self._n = 0

    def next_id(self) -> str:
        self._n += 1
        return f"{self.prefix}-{self._n}"


def _collapse(s):
    return " ".join(s.split()).lstrip(":").strip()


def split_gwt(paragraph):
    """(given, when, then) at the first WHEN/THEN after a leading GIVEN, or None."""
    given = GIVEN_KW.match(paragraph)
    if not given:
        return None
    when = WHEN_KW.search(paragraph, given.end())
    if not when:
        return None
    then = THEN_KW.search(paragraph, when.end())
    if not then:
        return None
    return (_collapse(paragraph[given.end():when.start()]),
            _collapse(paragraph[when.end():then.start()]),
            _collapse(paragraph[then.end():]))


class CriteriaExtractor(ABC):
    @abstractmethod
    def extract(self, source) -> List[Criterion]:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class GwtBlockExtractor(CriteriaExtractor):
    """Given/When/Then paragraphs -> one criterion each, with test-case hints."""

    def extract(self, text: str) -> List[Criterion]:
        if not isinstance(text, str):
            return []
        ids = CriterionIdAllocator()
        found = []
        for paragraph in PARAGRAPH_BREAK.split(text):
            if not paragraph.strip() or not GIVEN_KW.match(paragraph):
                continue
            parts = split_gwt(paragraph)
            if parts and all(parts):
                given, when, then = parts
                found.append(Criterion(
                    id=ids.next_id(),
                    criterion=f"GIVEN {given}\nWHEN {when}\nTHEN {then}",
                    test_cases=(f"Test: {when}", f"Expected: {then}"),
                ))
            else:
                # starts with GIVEN but incomplete: keep it whole
                found.append(Criterion(id=ids.next_id(), criterion=paragraph.strip()))
        return found


class ExplicitFieldExtractor(CriteriaExtractor):
    """Wraps a criteria list stored on the issue itself (custom field)."""

    def __init__(self, key_prefix: str = ""):
        self.key_prefix = (key_prefix or "").strip() or DEFAULT_KEY_PREFIX

    def extract(self, raw_criteria: Optional[Sequence[str]]) -> List[Criterion]:
        if not isinstance(raw_criteria, (list, tuple)):
            return []
        found = []
        for i, raw in enumerate(raw_criteria):
            if not isinstance(raw, str) or not raw.strip():
                logger.debug("Skipping empty explicit criterion at position %d", i)
                continue
            found.append(Criterion(id=f"{self.key_prefix}-AC-{i + 1}", criterion=raw.strip()))
        return found


class HeuristicLineExtractor(CriteriaExtractor):
    """Bullets, numbered items and modal-verb lines as criteria."""

    def extract(self, text: str) -> List[Criterion]:
        if not isinstance(text, str):
            return []
        ids = CriterionIdAllocator()
        found = []
        for line in text.split("\n"):
            line = line.strip()
            if not (LIST_MARKER.match(line) or MODAL_CUE.search(line)):
                continue
            if len(line) <= MIN_LINE_LENGTH:
                continue
            content = LEADING_MARKERS.sub("", line).strip()
            if content:
                found.append(Criterion(id=ids.next_id(), criterion=content))
        return found


def has_ac_markers(text: str) -> bool:
    if not text:
        return False
    if AC_TOKENS.search(text):
        return True
    # Given ... When ... Then, in that order, anywhere
    pos = 0
    for word in MARKER_SEQUENCE:
        m = word.search(text, pos)
        if not m:
            return False
        pos = m.end()
    return True


class CriteriaPipeline:
    """Runs the extractors in priority order for one description."""

    def __init__(self, key_prefix: str = ""):
        self.gwt = GwtBlockExtractor()
        self.explicit = ExplicitFieldExtractor(key_prefix)
        self.heuristic = HeuristicLineExtractor()

    def run(self, source: "ExtractionInput") -> List[Criterion]:
        text = source.text if isinstance(source.text, str) else ""
        text_pass = self.gwt if has_ac_markers(text) else self.heuristic
        criteria = text_pass.extract(text)
        logger.debug("%s found %d criteria", text_pass.name, len(criteria))
        # explicit list is additive, never a fallback
        criteria.extend(self.explicit.extract(source.explicit))
        return criteria


def description_text(document) -> str:
    if document is None:
        return ""
    if isinstance(document, str):
        return document.strip()
    if isinstance(document, dict):
        document = RichNode.from_adf(document)
    return render(document)


def extract_criteria(document, explicit_list=None, key_prefix: str = "") -> List[Criterion]:
    """Acceptance criteria for one issue description (RichNode, ADF dict, text or None)."""
    source = ExtractionInput(description_text(document), explicit_list)
    return CriteriaPipeline(key_prefix).run(source)
