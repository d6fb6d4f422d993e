"""
Stage prompt templates.

Each builder returns the full prompt string for one stage. Manuscript
text is truncated to the per-stage limits in config.constants.
"""

import json
from typing import List, Optional

from config.constants import (
    PROMPT_INTAKE_CHARS,
    PROMPT_LINE_EDIT_CHARS,
    PROMPT_STRUCTURE_CHARS,
    CONTINUITY_CHECK_TYPES,
)
from .continuity import ContinuityLedger
from .models import DocumentMetadata, StageResult


def intake_prompt(content: str, metadata: DocumentMetadata) -> str:
    return f"""
You are the Intake Agent for manuscript pre-processing.
Analyze this manuscript and extract key metadata:
- Detected genre (if not provided: {metadata.genre or 'unknown'})
- Estimated target audience
- Narrative voice (first person, third person, etc.)
- Dominant tense (past, present, mixed)
- Initial structural overview (chapters, sections)

Return ONLY JSON:
{{
  "detectedGenre": "",
  "targetAudience": "",
  "narrativeVoice": "",
  "dominantTense": "",
  "structuralOverview": "",
  "initialObservations": []
}}

MANUSCRIPT (first {PROMPT_INTAKE_CHARS} chars):
{content[:PROMPT_INTAKE_CHARS]}
"""


def grammar_prompt(content: str, reference_context: Optional[str] = None) -> str:
    guidance = reference_context or (
        "Follow Chicago Manual of Style guidelines for grammar, punctuation, and mechanics."
    )
    return f"""
You are the Grammar Agent applying strict grammar and mechanics rules.
Identify grammar, spelling, punctuation, and capitalization errors.

{guidance}

Return ONLY a JSON array of issues:
[{{
  "type": "grammar",
  "severity": "critical|major|minor",
  "location": {{"paragraph": 1, "offset": 10}},
  "message": "",
  "original": "",
  "suggestion": "",
  "ruleReference": ""
}}]

CONTENT:
{content[:PROMPT_LINE_EDIT_CHARS]}
"""


def syntax_prompt(content: str) -> str:
    return f"""
You are the Syntax Agent checking sentence balance, rhythm, and parallel structure.
Identify awkward constructions, run-ons, fragments, and parallelism issues.

Return ONLY a JSON array:
[{{
  "type": "syntax",
  "severity": "major|minor|suggestion",
  "location": {{"paragraph": 1}},
  "message": "",
  "original": "",
  "suggestion": ""
}}]

CONTENT:
{content[:PROMPT_LINE_EDIT_CHARS]}
"""


def temporal_prompt(content: str) -> str:
    return f"""
You are the Temporal Agent ensuring tense and voice consistency.
Check for:
- Tense shifts (past/present mixing)
- Voice consistency (active vs passive)
- Timeline coherence

Return ONLY JSON:
{{
  "dominantTense": "",
  "tenseShifts": [{{"location": {{"paragraph": 1}}, "from": "", "to": "", "severity": ""}}],
  "voiceIssues": [{{"location": {{"paragraph": 1}}, "message": ""}}]
}}

CONTENT:
{content[:PROMPT_LINE_EDIT_CHARS]}
"""


def structure_prompt(content: str, metadata: DocumentMetadata, analysis_type: str = "all") -> str:
    focus = {
        "pacing": "Focus on pacing: scene length, tension curve, slow or rushed passages.",
        "plotStructure": "Focus on plot structure: setup, escalation, climax, resolution.",
    }.get(analysis_type, "Cover pacing, transitions, narrative flow and plot structure.")
    return f"""
You are the Structure Agent evaluating macro-level organization.
Analyze:
- Chapter organization and pacing
- Scene transitions
- Narrative flow
- Plot structure (if fiction)
{focus}

Return ONLY JSON:
{{
  "pacingAssessment": "",
  "structuralIssues": [{{
    "location": {{"chapter": 1}},
    "type": "pacing|flow|organization",
    "severity": "",
    "message": ""
  }}],
  "recommendations": []
}}

GENRE: {metadata.genre or 'unknown'}
CONTENT:
{content[:PROMPT_STRUCTURE_CHARS]}
"""


def arc_prompt(content: str) -> str:
    return f"""
You are the Arc Agent tracking character development.
Identify:
- Major character arcs
- Character consistency issues
- Missing character beats
- Character voice distinctions

Return ONLY JSON:
{{
  "characters": [{{
    "name": "",
    "arcQuality": "strong|adequate|weak",
    "issues": [],
    "voiceConsistency": "high|medium|low"
  }}],
  "recommendations": []
}}

CONTENT:
{content[:PROMPT_STRUCTURE_CHARS]}
"""


def style_prompt(
    content: str,
    style_guide: str,
    genre: Optional[str] = None,
    reference_context: Optional[str] = None,
) -> str:
    genre_note = f" for {genre}" if genre else ""
    guidance = reference_context or (
        f"Follow {style_guide.upper()} guidelines and standard {genre or 'general'} genre conventions."
    )
    return f"""
You are the Chicago Agent (or {style_guide} specialist).
Apply style guide rules:
- Dialogue punctuation
- Em-dash/en-dash usage
- Serial comma
- Number formatting
- Genre-specific conventions{genre_note}

{guidance}

Return ONLY a JSON array:
[{{
  "type": "style",
  "severity": "major|minor",
  "location": {{"paragraph": 1}},
  "message": "",
  "ruleReference": "{style_guide}",
  "original": "",
  "suggestion": ""
}}]

CONTENT:
{content[:PROMPT_LINE_EDIT_CHARS]}
"""


def continuity_prompt(content: str, ledger: ContinuityLedger, check_types: Optional[List[str]] = None) -> str:
    checks = check_types or CONTINUITY_CHECK_TYPES
    known = json.dumps(ledger.to_dict(), ensure_ascii=False)
    return f"""
You are the Continuity Agent tracking cross-chapter consistency.
Check: {', '.join(checks)}
- Character names and aliases
- Timeline coherence
- Location descriptions
- Terminology consistency

ALREADY KNOWN (report contradictions against this record):
{known}

Return ONLY JSON:
{{
  "charactersTracked": [{{"name": "", "aliases": [], "firstMention": 1, "appearances": [], "inconsistencies": []}}],
  "timelineEvents": [{{"event": "", "chapter": 1, "timestamp": ""}}],
  "locationsTracked": [{{"name": "", "description": "", "chapter": 1}}],
  "termsTracked": [{{"term": "", "definition": "", "variants": []}}],
  "locationIssues": [{{"location": {{"chapter": 1}}, "message": ""}}],
  "terminologyIssues": [{{"location": {{"chapter": 1}}, "message": ""}}]
}}

CONTENT:
{content[:PROMPT_STRUCTURE_CHARS]}
"""


def readability_prompt(content: str, target_level: Optional[str] = None) -> str:
    return f"""
You are the Readability Agent optimizing flow and clarity.
Analyze:
- Sentence variety
- Paragraph length
- Reading level (target: {target_level or 'general adult'})
- Flow and transitions

Return ONLY JSON:
{{
  "fleschKincaidGrade": 0,
  "readabilityScore": 0,
  "sentenceVariety": "high|medium|low",
  "issues": [{{
    "type": "readability",
    "severity": "minor|suggestion",
    "location": {{"paragraph": 1}},
    "message": "",
    "suggestion": ""
  }}],
  "recommendations": []
}}

CONTENT:
{content[:PROMPT_LINE_EDIT_CHARS]}
"""


def qa_prompt(results: List[StageResult], ledger: ContinuityLedger) -> str:
    digest = json.dumps([
        {
            "agent": r.agent_name,
            "stage": r.stage,
            "confidence": round(r.confidence, 3),
            "issueCount": r.issue_count,
            "summary": r.summary,
        }
        for r in results
    ], ensure_ascii=False)
    return f"""
You are the QA Agent performing the final audit.
Review all previous agent results and identify:
- Remaining high-priority issues
- Consistency across edits
- Overall quality assessment

AGENT RESULTS:
{digest}

CONTINUITY RECORD:
{json.dumps(ledger.summary())}

Return ONLY JSON:
{{
  "overallQuality": "excellent|good|needs-work|poor",
  "remainingIssues": [],
  "approvalRecommendation": true,
  "notes": []
}}
"""
