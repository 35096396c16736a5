"""
AI prompt templates for justification validation and tone analysis.

The validation prompt asks the model for a structured JSON verdict;
the tone prompt asks for a one-sentence free-text description.
"""

from typing import Optional, Dict, Any


# ============= PROMPT TEMPLATES =============

_VALIDATION_TEMPLATE = """You are an AI grading assistant. Your task is to validate a professor's explanation for a given rubric criterion and score against a student's submission content.

Submission Content:
```
{submission_text}
```

Rubric Criterion: "{criterion_name}" - {criterion_description} (Max Score: {max_score})
Assigned Score: {score}
Professor's Explanation: "{explanation}"
{highlight_line}
Evaluate the professor's explanation based on the submission content and rubric criterion.
1. Determine if the explanation is 'Supported', 'Partial', or 'Not Supported' by the submission content.
2. If the explanation is 'Partial' or 'Not Supported', suggest a refinement to make it more accurate or specific.
3. Identify a direct excerpt from the submission content that best supports the assigned score and explanation, or highlights the area lacking support if 'Not Supported'.

Provide your response in JSON format according to the response schema.
"""

_TONE_TEMPLATE = """Analyze the tone of the following explanation provided by a professor for a student's grade. Describe its general sentiment (e.g., constructive, critical, neutral, empathetic, overly harsh, too vague) in a brief sentence.

Explanation: "{explanation}"

Tone Analysis:"""


# JSON schema handed to the model for structured output
VALIDATION_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "status": {
            "type": "STRING",
            "description": "One of 'Supported', 'Partial', or 'Not Supported'.",
            "enum": ["Supported", "Partial", "Not Supported"],
        },
        "referencedExcerpt": {
            "type": "STRING",
            "description": "A short excerpt from the submission that supports or contradicts the explanation.",
        },
        "suggestedRefinement": {
            "type": "STRING",
            "description": "A suggestion to improve the explanation if 'Partial' or 'Not Supported'. Empty if 'Supported'.",
        },
    },
    "required": ["status", "referencedExcerpt"],
    "propertyOrdering": ["status", "referencedExcerpt", "suggestedRefinement"],
}


def build_validation_prompt(
    submission_text: str,
    criterion_name: str,
    criterion_description: str,
    max_score: int,
    score: int,
    explanation: str,
    highlighted_text: Optional[str] = None
) -> str:
    """
    Build the justification validation prompt.

    Args:
        submission_text: Full text of the student's submission
        criterion_name: Rubric criterion name
        criterion_description: Rubric criterion description
        max_score: Maximum points for the criterion
        score: Score assigned by the grader
        explanation: Grader's explanation for the score
        highlighted_text: Optional excerpt the grader highlighted

    Returns:
        Prompt text
    """
    highlight_line = ""
    if highlighted_text:
        highlight_line = f'Professor highlighted this text from the submission: "{highlighted_text}"\n'

    return _VALIDATION_TEMPLATE.format(
        submission_text=submission_text,
        criterion_name=criterion_name,
        criterion_description=criterion_description,
        max_score=max_score,
        score=score,
        explanation=explanation,
        highlight_line=highlight_line,
    )


def build_tone_prompt(explanation: str) -> str:
    """Build the tone analysis prompt for one explanation."""
    return _TONE_TEMPLATE.format(explanation=explanation)
