"""Instruction templates sent to the extraction model."""

PRIMARY_EXTRACTION_PROMPT = """
You are a JSON extractor. Input is a raw WhatsApp message text containing one or more job listings.
Output a JSON object with an array "jobs" where each job contains:
- title (string, required)
- company (string, best effort)
- location (string, optional)
- salary (string, optional)
- job_type (one of: full-time, part-time, contract, internship, freelance, unknown)
- application_link (valid URL if present)
- contact (phone or email if present)
- deadline (date in ISO YYYY-MM-DD if present)
- description (short summary, 100-300 chars)
- confidence (0.0-1.0 float for how confident you are)

Only output valid JSON. If you cannot find jobs, output {"jobs": []}.
"""

# Cheaper yes/no screen, kept for triaging messages before full extraction
FALLBACK_PROMPT = """
Analyze the following text. Does it contain a job opportunity?
If yes, extract the Job Title and Application Method (Link or Phone).
Return JSON: {"is_job": boolean, "title": string, "method": string}
"""


def build_extraction_prompt(raw_text: str, template: str = PRIMARY_EXTRACTION_PROMPT) -> str:
    """Combine the instruction template with the quoted message body."""
    return f'{template.strip()}\n\nInput Message:\n"{raw_text}"'
