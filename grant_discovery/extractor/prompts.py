"""Prompt for the extraction stage (cheap model tier).

The registry's detail record nests its summary text under
``summary.summary_description``; the instruction calls that out because the
model otherwise copies the whole object into ``description``.
"""

EXTRACTION_SYSTEM_PROMPT = """Extract and normalize the following fields from this federal grant opportunity.
Return only valid JSON, with no preamble or explanation.

{
  "name": "<opportunity title>",
  "funder": "<agency name>",
  "grant_type": "federal",
  "description": "<from summary.summary_description (summary is an object, not a flat string), max 500 chars>",
  "amount_requested": null,
  "amount_max": <award_ceiling as number or null>,
  "primary_deadline": "<close_date ISO string or null>",
  "loi_deadline": null,
  "eligibility_notes": "<applicant types + any stated restrictions, max 300 chars>",
  "cfda_number": "<assistance_listing_number or null>"
}"""


EXTRACTION_USER_TEMPLATE = """Opportunity data:
{raw_json}"""


def build_extraction_prompt(raw_json: str) -> str:
    return EXTRACTION_USER_TEMPLATE.format(raw_json=raw_json)
