import logging
import os
from typing import Any, Dict, List, Optional

from a11y_engine.features.audit.schemas.issue import Issue, IssueSeverity, IssueSource
from a11y_engine.features.taxonomy.services.mapping import ErrorTypeMapping, get_error_mapping, letters_only

logger = logging.getLogger(__name__)

# Checker name fragments -> source. Longest matching fragment wins.
SOURCE_MARKERS: Dict[str, IssueSource] = {
    "axe-core": IssueSource.static_analyzer,
    "a11ylint": IssueSource.rule_linter,
}

SEVERITY_ALIASES: Dict[str, IssueSeverity] = {
    "critical": IssueSeverity.critical,
    "blocker": IssueSeverity.critical,
    "serious": IssueSeverity.major,
    "major": IssueSeverity.major,
    "error": IssueSeverity.major,
    "moderate": IssueSeverity.minor,
    "minor": IssueSeverity.minor,
    "warning": IssueSeverity.minor,
}

# AI image analysis type -> (error type, primary, secondary, impact)
IMAGE_ANALYSIS_TABLE = {
    "alt-relevance": (
        None, "1.3", "1.1.1",
        "Screen reader users cannot understand the content of this image.",
    ),
    "decorative-detection": (
        "image-decorative-incorrect", "1.2", "1.1.1",
        "Screen reader users hear irrelevant content or miss important information.",
    ),
    "text-in-image": (
        "text-in-image", "8.9", "1.4.5",
        "Text inside the image cannot be enlarged, read by a screen reader or translated.",
    ),
    "text-contrast": (
        "text-contrast-insufficient", "3.2", "1.4.3",
        "Users with low vision or colour blindness struggle to read the text in the image.",
    ),
    "color-only-info": (
        "color-only-information", "3.3", "1.4.1",
        "Colour-blind and screen reader users cannot perceive the information.",
    ),
}

IMAGE_DEFAULT_RECOMMENDATIONS = {
    "alt-relevance": "Improve the text alternative so it precisely describes the image content.",
    "decorative-detection": (
        "If the image is decorative, set alt=\"\" or role=\"presentation\". "
        "If it carries information, give it a descriptive alt."
    ),
    "text-in-image": "Replace the text in the image with real HTML text.",
    "text-contrast": (
        "Increase the contrast between text and background "
        "(at least 4.5:1 for normal text, 3:1 for large text)."
    ),
    "color-only-info": "Add another visual cue (icon, shape or text) alongside colour.",
}

GENERIC_ALT_TEXTS = {"image", "photo", "img", "picture"}

# AI contextual analysis type -> (error type, primary, secondary, impact)
CONTEXTUAL_ANALYSIS_TABLE = {
    "contrast-context": (
        "Insufficient contrast (complex context)", "3.2", "1.4.3",
        "Visually impaired and low-vision users.",
    ),
    "heading-relevance": (
        "Irrelevant heading", "6.1, 9.1", "2.4.6, 1.3.1",
        "Screen reader and keyboard users.",
    ),
    "link-context": (
        "Ambiguous link out of context", "6.2", "2.4.4",
        "Screen reader and keyboard users.",
    ),
    "table-headers": (
        "Non-descriptive table headers", "5.7", "1.3.1",
        "Screen reader users.",
    ),
}


def normalize_error_type(label: Optional[str]) -> str:
    return letters_only(label)


def normalize_severity(value: Any) -> IssueSeverity:
    if isinstance(value, IssueSeverity):
        return value
    return SEVERITY_ALIASES.get(str(value or "").strip().lower(), IssueSeverity.minor)


def detect_source(check_name: Optional[str]) -> IssueSource:
    """Map a checker name to its source; unmatched names come from the scanner."""
    name = (check_name or "").lower()
    best = None
    for marker in SOURCE_MARKERS:
        if marker in name and (best is None or len(marker) > len(best)):
            best = marker
    return SOURCE_MARKERS[best] if best else IssueSource.scanner


def severity_from_confidence(confidence: Any) -> IssueSeverity:
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        value = 0.5
    if value >= 0.8:
        return IssueSeverity.critical
    if value >= 0.5:
        return IssueSeverity.major
    return IssueSeverity.minor


def _join_refs(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, (list, tuple)):
        parts = [str(v).strip() for v in value if str(v).strip()]
        return ", ".join(parts) or None
    return str(value).strip() or None


def _standard_refs(finding: Dict[str, Any]):
    """Return (primary, secondary) references carried by a raw finding."""
    primary = _join_refs(finding.get("rgaaCriteria"))
    secondary = _join_refs(finding.get("wcagCriteria"))

    refs = finding.get("standardRefs")
    if isinstance(refs, dict):
        primary = primary or _join_refs(refs.get("primary") or refs.get("rgaa"))
        secondary = secondary or _join_refs(refs.get("secondary") or refs.get("wcag"))
    elif refs:
        secondary = secondary or _join_refs(refs)

    return primary, secondary


class FindingNormalizer:
    """
    Converts raw checker output into canonical ``Issue`` records.

    Raises ValueError on payloads that do not follow the checker contract; a
    single finding with missing optional fields is never an error.
    """

    def __init__(self, mapping: Optional[ErrorTypeMapping] = None):
        self.mapping = mapping or get_error_mapping()

    def normalize_finding(self, check_name: str, finding: Dict[str, Any], scope: Optional[str] = None) -> Issue:
        if not isinstance(finding, dict):
            raise ValueError(f"Finding of check '{check_name}' must be an object, got {type(finding).__name__}")

        error_type = check_name or "Unknown Test"
        primary, secondary = _standard_refs(finding)
        if not primary:
            primary = self.mapping.lookup(finding.get("ruleId") or finding.get("id"), error_type)

        return Issue(
            error_type=error_type,
            source=detect_source(check_name),
            severity=normalize_severity(finding.get("severity") or finding.get("impact")),
            selector=finding.get("selector") or "",
            context=finding.get("context"),
            primary_criterion=primary,
            secondary_criterion=secondary,
            description=finding.get("message") or finding.get("description") or "",
            scope=scope,
        )

    def normalize_scanner_result(self, payload: Dict[str, Any], scope: Optional[str] = None) -> List[Issue]:
        tests = payload.get("tests", [])
        if not isinstance(tests, list):
            raise ValueError("Scanner payload 'tests' must be a list")

        issues = []
        for test in tests:
            if not isinstance(test, dict):
                raise ValueError("Each scanner test must be an object")
            findings = test.get("issues") or []
            if not isinstance(findings, list):
                raise ValueError(f"Issues of check '{test.get('name')}' must be a list")
            for finding in findings:
                issues.append(self.normalize_finding(test.get("name", ""), finding, scope))
        return issues

    def normalize_image_analysis(self, results: Dict[str, List[Dict[str, Any]]], scope: Optional[str] = None) -> List[Issue]:
        """AI visual analysis grouped by analysis type; only entries with hasIssue count."""
        issues = []
        for analysis_type, entries in (results or {}).items():
            error_type, primary, secondary, impact = IMAGE_ANALYSIS_TABLE.get(
                analysis_type,
                ("image-accessibility-issue", None, None, "Affects users with disabilities."),
            )
            for entry in entries or []:
                if entry.get("hasIssue") is not True:
                    continue

                alt = entry.get("alt") or ""
                if analysis_type == "alt-relevance":
                    if not alt:
                        error_type = "image-alt-missing"
                    elif alt.lower() in GENERIC_ALT_TEXTS:
                        error_type = "image-alt-generic"
                    else:
                        error_type = "image-alt-not-relevant"

                filename = os.path.basename(entry.get("src") or "")
                suggestion = entry.get("suggestion") or ""
                issues.append(Issue(
                    error_type=error_type,
                    source=IssueSource.ai_visual,
                    severity=severity_from_confidence(entry.get("confidence", 0.5)),
                    selector=f"img[src*=\"{filename}\"]" if filename else "",
                    context=(
                        f"Image {entry.get('width', 0)}x{entry.get('height', 0)} - "
                        f"Alt: \"{alt or '(empty)'}\""
                    ),
                    primary_criterion=primary,
                    secondary_criterion=secondary,
                    description=f"Image '{filename}': {entry.get('issue') or 'Issue detected'}",
                    scope=scope,
                    recommendation=suggestion or IMAGE_DEFAULT_RECOMMENDATIONS.get(analysis_type),
                    code_fix=(
                        f"Current: alt=\"{alt}\"\nSuggested: alt=\"{suggestion}\""
                        if alt or suggestion else None
                    ),
                    impact_description=impact,
                ))
        return issues

    def normalize_contextual_analysis(self, results: Dict[str, List[Dict[str, Any]]], scope: Optional[str] = None) -> List[Issue]:
        issues = []
        for analysis_type, entries in (results or {}).items():
            error_type, primary, secondary, impact = CONTEXTUAL_ANALYSIS_TABLE.get(
                analysis_type,
                ("Contextual issue detected", None, None, "All users."),
            )
            for entry in entries or []:
                if entry.get("hasIssue") is not True:
                    continue
                element = entry.get("element") or {}
                issues.append(Issue(
                    error_type=error_type,
                    source=IssueSource.ai_contextual,
                    severity=severity_from_confidence(entry.get("confidence", 0.5)),
                    selector=element.get("selector") or "",
                    context=entry.get("issue"),
                    primary_criterion=primary,
                    secondary_criterion=secondary,
                    description=self._contextual_description(analysis_type, entry),
                    scope=scope,
                    recommendation=entry.get("suggestion") or None,
                    impact_description=impact,
                ))
        return issues

    @staticmethod
    def _contextual_description(analysis_type: str, entry: Dict[str, Any]) -> str:
        element = entry.get("element") or {}
        if analysis_type == "contrast-context":
            return (
                f"Insufficient visual contrast: \"{(element.get('text') or 'Element')[:80]}\" "
                f"(detected ratio: {element.get('contrast', 'N/A')})"
            )
        if analysis_type == "heading-relevance":
            return f"Irrelevant <{element.get('level', 'h?')}> heading: \"{(element.get('text') or 'Heading')[:80]}\""
        if analysis_type == "link-context":
            return f"Ambiguous link: \"{(element.get('text') or 'Link')[:50]}\" -> {(element.get('href') or '')[:50]}"
        if analysis_type == "table-headers":
            return f"Non-descriptive table headers: {', '.join((element.get('headers') or [])[:5])}"
        return entry.get("issue") or "Contextual issue detected"

    def normalize_payload(self, payload: Dict[str, Any], scope: Optional[str] = None) -> List[Issue]:
        """
        Normalize a full scan payload.

        Accepts the scanner ``tests`` list plus the optional ``imageAnalysis`` and
        ``contextualAnalysis`` sections produced by the AI analyzers.
        """
        if not isinstance(payload, dict):
            raise ValueError("Scan payload must be an object")

        issues = self.normalize_scanner_result(payload, scope)
        issues.extend(self.normalize_image_analysis(payload.get("imageAnalysis") or {}, scope))
        issues.extend(self.normalize_contextual_analysis(payload.get("contextualAnalysis") or {}, scope))

        logger.debug(f"Normalized {len(issues)} findings for {scope or 'unknown scope'}")
        return issues
