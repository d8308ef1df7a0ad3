from __future__ import annotations

from sdqc_web.domain.models import ProjectContext

CHECKLIST_PROMPT = """You are an expert quality control reviewer for architectural wall-panel shop drawings. Analyze this PDF and identify issues BEFORE the drawing goes to senior review.

## CRITICAL CHECKS (Must Pass)

### 1. SPELLING ERRORS - Look for typos such as:
- "Existig" → "Existing"
- "supllying" → "supplying"
- "exisitng" → "existing"
- "Bakclight" → "Backlight"
- "removility" → "removability"
- "seperate" → "separate"
- Any other spelling errors in callouts, notes, or labels

### 2. TBD/PLACEHOLDER TEXT - Flag any:
- "PRODUCTION #: TBD"
- "MRQ: TBD"
- "Design: TBD"
- Any field showing "TBD"

### 3. MISSING REQUIRED ELEMENTS:
- Company logo present
- Project name clearly stated
- Drawing type identified (Elevation, Plan, Detail)
- Version/revision number
- Scale indicated
- Date

### 4. MATERIAL/FINISH CALLOUTS:
- Material: "Corian Solid Surface" or "Solid Surface"
- Color specified
- Panel seam note if applicable
- Scale consistency across similar details

### 5. BACKLIT REQUIREMENTS (if backlit project):
- "REQUIRED: wall needs 3" gap for proper LED light diffusion"
- Ceiling gap for LED access
- "removable for LED access" OR "glued with silicone for removability"
- Wiring diagram with LED strip spacing
- Component list: receivers, drivers, amplifiers, LED rolls with counts
- "Total Wattage: XXXW"
- "Full set of install diagrams will be provided once final shop drawings have been approved"

### 6. SITUATIONAL:
- Cutouts: Border notes, fabrication note
- Corners: Butt joint dimension adjustments
- Logos/inlays: Artwork source, engraving depth, placement dimensions

### 7. LAYOUT:
- Any page overcrowded?
- Consistent dimension/leader text sizes?
- Consistent scales on same page?

Anything you cannot verify from the drawing itself (for example physical site conditions) goes in "manualReview".

## RESPONSE FORMAT

IMPORTANT: Return ONLY valid JSON. No text before or after. No markdown code blocks. Start directly with { and end with }

{
  "overallStatus": "pass" | "warning" | "fail",
  "summary": "Brief 1-2 sentence summary of findings",
  "criticalIssues": [
    {"id": "unique_id", "label": "Issue Name", "status": "fail", "notes": "What's wrong and where", "page": 1}
  ],
  "warnings": [
    {"id": "unique_id", "label": "Warning Name", "status": "warning", "notes": "What to review", "page": 2}
  ],
  "passed": [
    {"id": "unique_id", "label": "Check Name", "status": "pass", "notes": "Brief confirmation"}
  ],
  "manualReview": [
    {"id": "unique_id", "label": "Item Name", "status": "pending", "notes": "What a person must confirm"}
  ],
  "projectType": {"isBacklit": false, "hasCutouts": false, "hasCorners": false, "hasLogos": false},
  "extractedInfo": {"projectName": "", "location": "", "version": "", "drawnBy": "", "pageCount": 4}
}

Be thorough. If something fails, explain exactly what's wrong and where."""

CLOSING_REMINDER = "REMEMBER: Output ONLY the JSON object. No other text."

CONTEXT_HINTS = (
    ("is_backlit", "This is a BACKLIT wall - check all backlit requirements carefully."),
    ("has_cutouts", "This has CUTOUTS - verify cutout border and fabrication notes."),
    ("has_corners", "This has CORNERS - check butt joint dimension adjustments."),
    ("has_logos", "This has LOGOS or INLAYS - verify artwork, engraving and placement callouts."),
)


def build_context_note(context: ProjectContext) -> str:
    return " ".join(hint for attr, hint in CONTEXT_HINTS if getattr(context, attr))


def build_instruction(context: ProjectContext) -> str:
    note = build_context_note(context)
    parts = [CHECKLIST_PROMPT]
    if note:
        parts.append("PROJECT CONTEXT: " + note)
    parts.append(CLOSING_REMINDER)
    return "\n\n".join(parts)
