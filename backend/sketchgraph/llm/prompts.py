"""Prompt templates per LLM task."""

from __future__ import annotations

_ENHANCE_SYSTEM = (
    "You are an expert UI/UX analyzer. Provide concise, structured responses in JSON format only. "
    "Do not wrap the JSON in prose or code fences."
)

_ENHANCE_TEMPLATE = """Analyze these UI components extracted from a hand-drawn wireframe and provide enhanced semantic understanding.

Components:
{components}

Provide a JSON object with:
1. Enhanced role assignments, more specific than the current roles
2. A short human-readable name for each component
3. Relationships between components
4. Importance of each component between 0 and 1

Requirements:
- Keep descriptions under 20 words each
- Focus on semantic meaning over visual details
- Identify functional relationships
- Only use component ids from the list above

Response format:
{{
  "enhancedComponents": [
    {{
      "id": "component-id",
      "enhancedRole": "specific_role_name",
      "humanName": "Short meaningful name",
      "description": "Brief semantic description",
      "importance": 0.8
    }}
  ],
  "relationships": [
    {{
      "source": "comp1",
      "target": "comp2",
      "type": "contains|triggers|validates|etc",
      "description": "Brief relationship description"
    }}
  ]
}}"""

_RELATIONSHIPS_SYSTEM = "You are a UI relationship analyst. Provide concise JSON responses only."

_RELATIONSHIPS_TEMPLATE = """Analyze spatial and functional relationships between these UI components:
{components}

Identify key relationships like:
- Layout relationships (above, below, contains)
- Functional relationships (button triggers form, input validates against field)
- Data flow relationships (form populates table, filter affects list)

Response format:
{{
  "relationships": [
    {{
      "source": "comp1",
      "target": "comp2",
      "type": "contains|triggers|validates|above|below|etc",
      "confidence": 0.8,
      "description": "Brief explanation"
    }}
  ]
}}

Focus on the most important relationships only (max {max_relationships})."""

_SYSTEM_PROMPTS = {
    "enhance": _ENHANCE_SYSTEM,
    "relationships": _RELATIONSHIPS_SYSTEM,
}

_TEMPLATES = {
    "enhance": _ENHANCE_TEMPLATE,
    "relationships": _RELATIONSHIPS_TEMPLATE,
}


def get_system_prompt(task: str) -> str:
    return _SYSTEM_PROMPTS.get(task, _ENHANCE_SYSTEM)


def get_prompt_template(task: str) -> str:
    return _TEMPLATES.get(task, _ENHANCE_TEMPLATE)


def get_all_templates() -> dict[str, str]:
    return dict(_TEMPLATES)
