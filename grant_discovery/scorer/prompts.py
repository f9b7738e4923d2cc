"""Prompt assembly for the scoring stage (capable model tier).

The org profile's prompt text carries the rubric, the auto-reject rules and
the required JSON shape; the pipeline only appends the extracted fields.
"""

SCORING_TEMPLATE = """{profile_prompt}

OPPORTUNITY TO SCORE:
{fields_json}"""


def build_scoring_prompt(profile_prompt: str, fields_json: str) -> str:
    return SCORING_TEMPLATE.format(profile_prompt=profile_prompt, fields_json=fields_json)
