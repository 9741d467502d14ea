"""
Prompt builders for note analysis.

The default prompt asks for the full judgment; the named templates tune the
analysis for a kind of note (journaling, meetings, quick thoughts, ...). All of
them ask Claude for a bare JSON object so iforgot.ai.classifier.parse_judgment
can read the answer.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence


def _categories_line(existing_categories: Sequence[str]) -> str:
    return ", ".join(existing_categories) or "None"


# PUBLIC_INTERFACE
def build_default_prompt(
    note_content: str,
    existing_categories: Sequence[str],
    extract_entities: bool = True,
    generate_summary: bool = True,
    detect_mood: bool = True,
) -> str:
    """Build the prompt used for every saved note."""
    categories = ", ".join(existing_categories) if existing_categories else "No existing categories"

    fields = [
        '  "themes": ["theme1", "theme2"]',
        '  "sentiment": "positive" or "negative" or "neutral"',
    ]
    if detect_mood:
        fields.append(
            '  "mood": "a simple, empathetic description of the user\'s mood '
            '(e.g. \'excited\', \'overwhelmed\', \'focused\')"'
        )
    fields.append('  "action_items": ["actionable task 1", "actionable task 2"]')
    fields.append(
        '  "category": {\n'
        '    "action": "assign" or "create",\n'
        '    "name": "Category Name",\n'
        '    "confidence": 0.85\n'
        "  }"
    )
    if generate_summary:
        fields.append('  "summary": "A brief, helpful summary in one sentence"')
    if extract_entities:
        fields.append(
            '  "entities": {\n'
            '    "people": ["person names mentioned"],\n'
            '    "places": ["locations mentioned"],\n'
            '    "dates": ["dates or time references"],\n'
            '    "tags": ["relevant hashtags or keywords"]\n'
            "  }"
        )
    structure = "{\n" + ",\n".join(fields) + "\n}"

    return f"""You are helping an ADHD user organize their thoughts. Analyze this note and provide structured information.

Existing categories: {categories}

Note: "{note_content}"

Analyze this note and return ONLY a valid JSON object with this exact structure:
{structure}

Guidelines:
- For category: if the note fits an existing category well (>80% confidence), use "assign" with that exact name. Otherwise suggest a new category name with "create"
- Keep themes simple and relatable (2-4 max)
- Action items should be clear, actionable tasks extracted from the note
- Be empathetic and understanding - this user may be overwhelmed
- Return ONLY the JSON object, no other text"""


# PUBLIC_INTERFACE
def build_custom_prompt(
    instruction: str,
    note_content: str,
    existing_categories: Sequence[str],
    user_context: Optional[str] = None,
) -> str:
    """Wrap a free-form instruction with the note and the expected JSON structure."""
    context_line = f"Context: {user_context}\n" if user_context else ""
    return f"""{instruction}

Existing categories: {_categories_line(existing_categories)}
Note: "{note_content}"
{context_line}
Return ONLY a valid JSON object with this structure:
{{
  "themes": ["theme1", "theme2"],
  "sentiment": "positive/negative/neutral",
  "mood": "mood description",
  "action_items": ["task1", "task2"],
  "category": {{
    "action": "assign" or "create",
    "name": "Category Name",
    "confidence": 0.0-1.0
  }},
  "summary": "brief summary",
  "entities": {{
    "people": [],
    "places": [],
    "dates": [],
    "tags": []
  }}
}}"""


def _mood_and_category(note_content: str, existing_categories: Sequence[str]) -> str:
    return f"""You are a supportive AI assistant for someone with ADHD. Analyze this note with empathy.

Existing categories: {_categories_line(existing_categories)}
Note: "{note_content}"

Return ONLY a JSON object:
{{
  "mood": "a warm, understanding description of their mood",
  "sentiment": "positive/negative/neutral",
  "themes": ["main theme"],
  "category": {{
    "action": "assign" or "create",
    "name": "simple category name",
    "confidence": 0.9
  }},
  "action_items": []
}}

Be kind and supportive. This person is doing great by taking notes!"""


def _task_focused(note_content: str, existing_categories: Sequence[str]) -> str:
    return f"""Extract actionable tasks from this note. Be specific and clear.

Existing categories: {_categories_line(existing_categories)}
Note: "{note_content}"

Return ONLY a JSON object:
{{
  "action_items": ["clear, actionable task 1", "task 2", "task 3"],
  "themes": ["work", "personal"],
  "sentiment": "positive/negative/neutral",
  "category": {{
    "action": "assign" or "create",
    "name": "Work" or "Personal" or other,
    "confidence": 0.85
  }},
  "summary": "one-line summary of what needs to be done"
}}

Make tasks clear and actionable. Break down complex items."""


def _journaling(note_content: str, existing_categories: Sequence[str]) -> str:
    return f"""This is a personal journal entry. Analyze with deep empathy and understanding.

Existing categories: {_categories_line(existing_categories)}
Note: "{note_content}"

Return ONLY a JSON object:
{{
  "mood": "empathetic mood description",
  "sentiment": "positive/negative/neutral",
  "themes": ["emotional theme 1", "theme 2"],
  "category": {{
    "action": "assign" or "create",
    "name": "appropriate journal category",
    "confidence": 0.8
  }},
  "summary": "supportive, kind summary",
  "action_items": ["any self-care or follow-up items"],
  "entities": {{
    "people": ["people mentioned"],
    "dates": ["time references"]
  }}
}}

Be warm, non-judgmental, and supportive. Validate their feelings."""


def _meeting_notes(note_content: str, existing_categories: Sequence[str]) -> str:
    return f"""Extract key information from these meeting notes.

Existing categories: {_categories_line(existing_categories)}
Note: "{note_content}"

Return ONLY a JSON object:
{{
  "themes": ["meeting topic 1", "topic 2"],
  "sentiment": "positive/negative/neutral",
  "action_items": ["clear action item with owner if mentioned"],
  "category": {{
    "action": "assign" or "create",
    "name": "Meetings" or specific meeting type,
    "confidence": 0.9
  }},
  "summary": "brief meeting summary",
  "entities": {{
    "people": ["attendees or mentioned people"],
    "dates": ["deadlines or future meeting dates"],
    "tags": ["key topics or projects"]
  }}
}}

Be clear and organized. Highlight what requires follow-up."""


def _quick_capture(note_content: str, existing_categories: Sequence[str]) -> str:
    return f"""Quick analysis of this thought:

Note: "{note_content}"
Categories: {_categories_line(existing_categories)}

Return ONLY a JSON object:
{{
  "themes": ["one main theme"],
  "sentiment": "positive/negative/neutral",
  "category": {{
    "action": "assign" or "create",
    "name": "best fit category",
    "confidence": 0.7
  }},
  "action_items": []
}}

Keep it simple and fast."""


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class PromptTemplate:
    """A named prompt builder."""
    name: str
    description: str
    build: Callable[[str, Sequence[str]], str]


PROMPT_TEMPLATES: Dict[str, PromptTemplate] = {
    "moodAndCategory": PromptTemplate(
        "Mood & Category", "Detects mood and assigns a simple category", _mood_and_category
    ),
    "taskFocused": PromptTemplate(
        "Task Extraction", "Extracts actionable tasks and priorities", _task_focused
    ),
    "journaling": PromptTemplate(
        "Personal Journal", "Empathetic analysis for personal journaling", _journaling
    ),
    "meetingNotes": PromptTemplate(
        "Meeting Notes", "Structured analysis for meetings and discussions", _meeting_notes
    ),
    "quickCapture": PromptTemplate(
        "Quick Capture", "Fast, minimal analysis for quick thoughts", _quick_capture
    ),
}


# PUBLIC_INTERFACE
def get_prompt_template(key: str) -> Optional[PromptTemplate]:
    return PROMPT_TEMPLATES.get(key)


# PUBLIC_INTERFACE
def list_templates() -> List[Dict[str, str]]:
    """Key, name and description of every template, for the UI picker."""
    return [
        {"key": key, "name": template.name, "description": template.description}
        for key, template in PROMPT_TEMPLATES.items()
    ]
