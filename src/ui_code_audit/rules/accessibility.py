"""Accessibility detectors for JSX/TSX/HTML/CSS sources.

Detects:
- Images without alt text, with empty alt or with generic alt text
- Skipped heading levels, repeated <h1>, empty headings
- Form controls without a label hook
- Color literals that need a manual contrast check
- Click handlers without a keyboard equivalent
- Empty or duplicated ARIA attributes
- Clickable <div>/<span> outside the tab order
- Dialogs/modals without focus management
"""

import re

from ..models import Finding, Severity
from .common import HEADING_OPEN, DetectorRegistry, FileContext, split_lines

SEVERITY_LEVELS: dict[str, Severity] = {
    "missing_alt": Severity.high,
    "empty_alt": Severity.medium,
    "generic_alt": Severity.medium,
    "skipped_heading": Severity.medium,
    "multiple_h1": Severity.medium,
    "empty_heading": Severity.low,
    "missing_form_label": Severity.high,
    "color_contrast": Severity.medium,
    "keyboard_navigation": Severity.medium,
    "empty_aria": Severity.medium,
    "duplicate_aria": Severity.medium,
    "tab_order_focus": Severity.medium,
    "focus_management": Severity.medium,
    "missing_landmark": Severity.medium,
    "missing_skip_link": Severity.medium,
    "missing_lang": Severity.medium,
    "missing_title": Severity.medium,
}

WCAG_MAPPING: dict[str, str] = {
    "missing_alt": "1.1.1",
    "empty_alt": "1.1.1",
    "generic_alt": "1.1.1",
    "skipped_heading": "1.3.1",
    "multiple_h1": "1.3.1",
    "empty_heading": "1.3.1",
    "missing_form_label": "3.3.2",
    "color_contrast": "1.4.3",
    "keyboard_navigation": "2.1.1",
    "empty_aria": "4.1.2",
    "duplicate_aria": "4.1.2",
    "tab_order_focus": "2.4.3",
    "focus_management": "2.4.3",
    "missing_landmark": "1.3.1",
    "missing_skip_link": "2.4.1",
    "missing_lang": "3.1.1",
    "missing_title": "2.4.2",
}

# Props that mean the image is labelled some other way
ACCESSIBILITY_PROPS = (
    "imgAlt",
    "altText",
    "aria-label",
    "aria-labelledby",
    "aria-describedby",
    "screenReaderText",
)

GENERIC_ALT_TEXT = frozenset({
    "image", "img", "photo", "picture", "graphic", "icon", "logo", "banner", "placeholder",
})

IMAGE_TAG = re.compile(r"<(?:(?i:img)|Image)\b[^>]*>")
ALT_ATTRIBUTE = re.compile(r"\balt\s*=")
ALT_VALUE = re.compile(r"""\balt\s*=\s*(?:\{\s*)?(["'`])(.*?)\1""")

HEADING_ELEMENT = re.compile(r"<h([1-6])\b[^>]*>(.*?)</h\1\s*>", re.IGNORECASE)

FORM_CONTROL = re.compile(r"<(?:input|textarea|select)\b[^>]*>", re.IGNORECASE)
LABEL_HOOK = re.compile(r"\b(?:aria-label|aria-labelledby|id)\s*=")
HIDDEN_INPUT = re.compile(r"""\btype\s*=\s*["']hidden["']""", re.IGNORECASE)

COLOR_LITERAL = re.compile(
    r"""\b(?:color|background-color|backgroundColor)\s*:\s*['"]?"""
    r"""(?:#[0-9a-fA-F]{3,8}\b|rgba?\([^)]*\))""",
)

CLICK_HANDLER = re.compile(
    r"""\bonclick\s*=|addEventListener\s*\(\s*['"]click['"]""",
    re.IGNORECASE,
)
KEYBOARD_HANDLER = re.compile(
    r"""\bonkey(?:down|up|press)\s*=|addEventListener\s*\(\s*['"]key(?:down|up|press)['"]""",
    re.IGNORECASE,
)
# Elements that are keyboard operable without extra handlers
NATIVE_INTERACTIVE = re.compile(r"<(?:button|a|input|select|textarea|summary)\b", re.IGNORECASE)

EMPTY_ARIA = re.compile(r"""\b(aria-label|aria-labelledby)\s*=\s*(?:\{\s*)?(["'])\s*\2""")
TAG = re.compile(r"<[A-Za-z][^<>]*>")
ARIA_ATTRIBUTE = re.compile(r"\b(aria-[a-z]+(?:-[a-z]+)*)\s*=")

CLICKABLE_CONTAINER = re.compile(r"<(?:div|span)\b", re.IGNORECASE)
TAB_INDEX = re.compile(r"\btabindex\s*=", re.IGNORECASE)

DIALOG_OPEN = re.compile(r"<(?:dialog|modal)\b", re.IGNORECASE)
FOCUS_HINT = re.compile(r"focusTrap|trapFocus|tabindex|autoFocus|initialFocus", re.IGNORECASE)

accessibility_detectors = DetectorRegistry()


def _finding(context: FileContext, type: str, line_index: int, message: str,
             recommendation: str | None = None) -> Finding:
    return context.make_finding(
        type=type,
        severity=SEVERITY_LEVELS[type],
        line_index=line_index,
        message=message,
        recommendation=recommendation,
        wcag=WCAG_MAPPING.get(type),
    )


def _uses_accessible_component(line: str, context: FileContext) -> bool:
    return any(re.search(rf"<{re.escape(name)}\b", line) for name in context.accessible_components)


def _has_accessibility_prop(tag: str) -> bool:
    return any(f"{prop}=" in tag for prop in ACCESSIBILITY_PROPS)


def _image_tags(line: str, context: FileContext) -> list[str]:
    if _uses_accessible_component(line, context):
        return []
    return IMAGE_TAG.findall(line)


@accessibility_detectors.register("missing_alt")
def detect_missing_alt(line: str, line_index: int, context: FileContext) -> list[Finding]:
    findings = []
    for tag in _image_tags(line, context):
        if ALT_ATTRIBUTE.search(tag) or _has_accessibility_prop(tag):
            continue
        findings.append(_finding(
            context, "missing_alt", line_index,
            "Image missing alt attribute",
            "Add descriptive alt text, or alt=\"\" if the image is purely decorative",
        ))
    return findings


@accessibility_detectors.register("empty_alt")
def detect_empty_alt(line: str, line_index: int, context: FileContext) -> list[Finding]:
    findings = []
    for tag in _image_tags(line, context):
        match = ALT_VALUE.search(tag)
        if match and not match.group(2).strip() and not _has_accessibility_prop(tag):
            findings.append(_finding(
                context, "empty_alt", line_index,
                "Image has empty alt text",
                "Empty alt is only correct for decorative images; describe meaningful images",
            ))
    return findings


@accessibility_detectors.register("generic_alt")
def detect_generic_alt(line: str, line_index: int, context: FileContext) -> list[Finding]:
    findings = []
    for tag in _image_tags(line, context):
        match = ALT_VALUE.search(tag)
        if not match:
            continue
        text = match.group(2).strip().lower().rstrip(".")
        if text in GENERIC_ALT_TEXT or text.startswith(("image of", "picture of", "photo of")):
            findings.append(_finding(
                context, "generic_alt", line_index,
                f"Image alt text is generic: \"{match.group(2).strip()}\"",
                "Describe what the image shows or what it is for",
            ))
    return findings


@accessibility_detectors.register("skipped_heading")
def detect_skipped_heading(line: str, line_index: int, context: FileContext) -> list[Finding]:
    matches = list(HEADING_OPEN.finditer(line))
    if not matches:
        return []
    findings = []
    seen = context.heading_levels_before(line_index)
    for match in matches:
        level = int(match.group(1))
        if level > 1 and level - 1 not in seen:
            findings.append(_finding(
                context, "skipped_heading", line_index,
                f"Heading level {level} used without previous level {level - 1}",
                "Keep heading levels sequential so the outline stays navigable",
            ))
        seen.add(level)
    return findings


@accessibility_detectors.register("multiple_h1")
def detect_multiple_h1(line: str, line_index: int, context: FileContext) -> list[Finding]:
    h1_tags = [m for m in HEADING_OPEN.finditer(line) if m.group(1) == "1"]
    if not h1_tags:
        return []
    findings = []
    count = context.heading_count_before(line_index, 1)
    for _ in h1_tags:
        if count >= 1:
            findings.append(_finding(
                context, "multiple_h1", line_index,
                "Multiple <h1> elements in one file",
                "Use a single <h1> per page and <h2>-<h6> for sections",
            ))
        count += 1
    return findings


@accessibility_detectors.register("empty_heading")
def detect_empty_heading(line: str, line_index: int, context: FileContext) -> list[Finding]:
    findings = []
    for match in HEADING_ELEMENT.finditer(line):
        if not match.group(2).strip():
            findings.append(_finding(
                context, "empty_heading", line_index,
                f"Empty <h{match.group(1)}> heading",
                "Give the heading text content or remove it",
            ))
    return findings


@accessibility_detectors.register("missing_form_label")
def detect_missing_form_label(line: str, line_index: int, context: FileContext) -> list[Finding]:
    findings = []
    for tag in FORM_CONTROL.findall(line):
        if LABEL_HOOK.search(tag) or HIDDEN_INPUT.search(tag):
            continue
        findings.append(_finding(
            context, "missing_form_label", line_index,
            "Form control missing proper labeling",
            "Associate a <label for=...> via id, or add aria-label / aria-labelledby",
        ))
    return findings


@accessibility_detectors.register("color_contrast")
def detect_color_contrast(line: str, line_index: int, context: FileContext) -> list[Finding]:
    if not COLOR_LITERAL.search(line):
        return []
    return [_finding(
        context, "color_contrast", line_index,
        "Color usage detected - verify contrast ratios meet WCAG guidelines",
        "Use tools like axe-core or Lighthouse to check actual contrast ratios",
    )]


@accessibility_detectors.register("keyboard_navigation")
def detect_keyboard_navigation(line: str, line_index: int, context: FileContext) -> list[Finding]:
    if not CLICK_HANDLER.search(line):
        return []
    if KEYBOARD_HANDLER.search(line) or NATIVE_INTERACTIVE.search(line):
        return []
    return [_finding(
        context, "keyboard_navigation", line_index,
        "Click handler without keyboard support",
        "Add keyboard event handlers or use semantic HTML elements",
    )]


@accessibility_detectors.register("empty_aria")
def detect_empty_aria(line: str, line_index: int, context: FileContext) -> list[Finding]:
    return [
        _finding(
            context, "empty_aria", line_index,
            f"Empty ARIA attribute detected: {match.group(1)}",
            "Provide a meaningful value or remove the attribute",
        )
        for match in EMPTY_ARIA.finditer(line)
    ]


@accessibility_detectors.register("duplicate_aria")
def detect_duplicate_aria(line: str, line_index: int, context: FileContext) -> list[Finding]:
    findings = []
    for tag in TAG.findall(line):
        names = ARIA_ATTRIBUTE.findall(tag)
        reported: set[str] = set()
        for name in names:
            if names.count(name) > 1 and name not in reported:
                reported.add(name)
                findings.append(_finding(
                    context, "duplicate_aria", line_index,
                    f"Duplicate {name} attribute on one element",
                    "Keep a single instance of each ARIA attribute",
                ))
    return findings


@accessibility_detectors.register("tab_order_focus")
def detect_tab_order_focus(line: str, line_index: int, context: FileContext) -> list[Finding]:
    if not (CLICKABLE_CONTAINER.search(line) and CLICK_HANDLER.search(line)):
        return []
    if TAB_INDEX.search(line):
        return []
    return [_finding(
        context, "tab_order_focus", line_index,
        "Interactive element may be missing tabindex or focus management",
        "Use a <button>, or add tabIndex={0} and a role to the clickable element",
    )]


@accessibility_detectors.register("focus_management")
def detect_focus_management(line: str, line_index: int, context: FileContext) -> list[Finding]:
    if not DIALOG_OPEN.search(line) or FOCUS_HINT.search(line):
        return []
    return [_finding(
        context, "focus_management", line_index,
        "Modal/dialog may be missing focus trap or focus management",
        "Trap focus inside the dialog and restore it to the trigger on close",
    )]


def scan_accessibility(
    path: str,
    content: str,
    accessible_components: list[str] | tuple[str, ...] = (),
) -> list[Finding]:
    """Run all accessibility detectors over one file's content."""
    context = FileContext(
        path=path,
        lines=split_lines(content),
        accessible_components=tuple(accessible_components),
    )
    return accessibility_detectors.run(context)
