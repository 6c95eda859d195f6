"""
Lexical heuristics over error types and recommendations.

Everything here is table driven: each table maps terms to an outcome, and terms
are matched at word starts so "alt" hits "image-alt" but not "default".
"""
import re
from functools import lru_cache
from typing import Dict, Iterable, Optional, Tuple

from a11y_engine.features.audit.schemas.issue import Complexity

HIGH_COMPLEXITY_TERMS = ("structure", "navigation", "form", "table", "script", "keyboard", "focus")
LOW_COMPLEXITY_TERMS = ("alt", "label", "title", "aria-label", "lang")

CATEGORY_STRUCTURAL = "structural"
CATEGORY_CONTENT = "content"
CATEGORY_TECHNICAL = "technical"
CATEGORY_TRAINING = "training"

CATEGORY_TERMS: Dict[str, Tuple[str, ...]] = {
    CATEGORY_STRUCTURAL: (
        "heading", "landmark", "semantic", "structure", "region", "list", "hierarchy",
        "outline", "table", "frame", "document",
    ),
    CATEGORY_CONTENT: (
        "alt", "label", "link", "button", "caption", "transcript", "text alternative",
        "wording", "title", "lang",
    ),
    CATEGORY_TECHNICAL: (
        "contrast", "color", "colour", "focus", "aria", "script", "keyboard", "tabindex",
        "markup", "duplicate", "valid", "autocomplete",
    ),
    CATEGORY_TRAINING: (
        "training", "guideline", "editorial", "awareness", "process", "team", "author",
        "documentation",
    ),
}

FALLBACK_RECOMMENDATIONS: Dict[str, str] = {
    "image": (
        "Add a descriptive alt attribute to every <img>. If the image is purely decorative, "
        "use alt=\"\" or role=\"presentation\"."
    ),
    "contrast": (
        "Increase the contrast between the text and its background to at least 4.5:1 for normal "
        "text, or 3:1 for large text (18pt, or 14pt bold)."
    ),
    "link": (
        "Replace vague link texts such as \"Click here\" or \"Read more\" with explicit texts "
        "describing the destination (e.g. \"Download the annual report (PDF)\")."
    ),
    "button": (
        "Use a semantic <button> element instead of a styled <div> or <span>, set type=\"button\" "
        "or type=\"submit\", and give it a visible or aria-label name."
    ),
    "heading": (
        "Follow the heading hierarchy: one <h1> for the main title, then <h2>, <h3> and so on, "
        "without skipping levels."
    ),
    "page_title": "Give each page a unique <title> that describes its content.",
    "label": (
        "Associate each form field with an explicit <label> using the for attribute, or wrap the "
        "field in the <label>. Do not rely on placeholder text alone."
    ),
    "aria": (
        "Check ARIA usage: add aria-label or aria-labelledby to interactive elements without "
        "visible text, and only use valid roles and attributes."
    ),
    "keyboard": (
        "Make every interactive element reachable with the keyboard (tabindex=\"0\" where needed) "
        "and show a visible focus indicator (:focus and :focus-visible)."
    ),
    "color": (
        "Do not convey information by colour alone. Add icons, text or patterns alongside the "
        "colour."
    ),
    "lang": (
        "Declare the document language with the lang attribute on <html> (e.g. <html lang=\"en\">) "
        "and mark passages in another language with lang on the element."
    ),
    "frame": "Give each <iframe> a title attribute describing the framed content.",
}

# term -> recommendation key; longest matching term wins
FALLBACK_TERMS: Dict[str, str] = {
    "alt": "image",
    "image": "image",
    "img": "image",
    "contrast": "contrast",
    "link": "link",
    "button": "button",
    "heading": "heading",
    "title": "page_title",
    "label": "label",
    "aria": "aria",
    "keyboard": "keyboard",
    "focus": "keyboard",
    "color": "color",
    "colour": "color",
    "lang": "lang",
    "language": "lang",
    "frame": "frame",
    "iframe": "frame",
}

GENERIC_PHRASES = (
    "check the code",
    "review the code",
    "apply the corrections",
    "apply the fixes",
    "fix the accessibility",
    "fix accessibility",
    "update the code",
    "comply with the standards",
    "comply with standards",
    "follow the guidelines",
    "according to the rules",
    "vérifier le code",
    "appliquer les corrections",
    "corriger l'accessibilité",
    "mettre à jour le code",
    "respecter les normes",
    "conformément aux",
    "selon les règles",
)


@lru_cache(maxsize=None)
def _term_pattern(term: str):
    return re.compile(r"(?<![a-z0-9])" + re.escape(term), re.IGNORECASE)


def matched_terms(text: str, terms: Iterable[str]):
    """Terms that occur in text at a word start."""
    if not text:
        return []
    return [term for term in terms if _term_pattern(term).search(text)]


def longest_match(text: str, table: Dict[str, str]) -> Optional[str]:
    """Outcome of the longest term of table found in text, ties going to the first listed."""
    best = None
    for term in matched_terms(text, table):
        if best is None or len(term) > len(best):
            best = term
    return table[best] if best else None


def complexity(error_type: str, recommendation: Optional[str] = None) -> Complexity:
    text = f"{error_type or ''} {recommendation or ''}"
    if matched_terms(text, HIGH_COMPLEXITY_TERMS):
        return Complexity.high
    if matched_terms(text, LOW_COMPLEXITY_TERMS):
        return Complexity.low
    return Complexity.medium


def category(error_type: str, description: Optional[str] = None, recommendation: Optional[str] = None) -> str:
    """
    Highest-scoring keyword bucket over the combined text.

    Each bucket scores the number of its terms found. No hits, or a tie for the
    top score, gives "technical".
    """
    text = " ".join(part for part in (error_type, description, recommendation) if part)
    scores = {bucket: len(matched_terms(text, terms)) for bucket, terms in CATEGORY_TERMS.items()}

    top = max(scores.values())
    if top == 0:
        return CATEGORY_TECHNICAL
    leaders = [bucket for bucket, score in scores.items() if score == top]
    if len(leaders) > 1:
        return CATEGORY_TECHNICAL
    return leaders[0]


def is_generic_recommendation(text: Optional[str]) -> bool:
    if not text:
        return True
    lowered = text.lower()
    return any(phrase in lowered for phrase in GENERIC_PHRASES)


def fallback_recommendation(error_type: str, selector: Optional[str] = None) -> str:
    """Deterministic recommendation used when the AI collaborator gives nothing usable."""
    key = longest_match(error_type or "", FALLBACK_TERMS)
    if key:
        return FALLBACK_RECOMMENDATIONS[key]
    return (
        f"Fix the element {selector or 'identified'} so it meets the corresponding criterion. "
        "See the RGAA 4.1 reference for the detailed requirements."
    )
