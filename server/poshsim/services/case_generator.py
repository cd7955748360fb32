"""Gemini client for generating POSH training case files.

Wraps the google-genai async client with the prompts used to request a full
case, the simplified retry prompt, and the narrower witness-statement request.
"""

import logging
import random
from typing import Optional

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

FALLBACK_MODELS = (
    "gemini-2.5-flash",
    "gemini-2.0-flash",
)


# ===========================================
# Prompts
# ===========================================

CASE_SYSTEM_PROMPT = """You are a POSH (Prevention of Sexual Harassment) training simulation designer for experienced Internal Committee members, HR professionals and legal advisors in India.

Generate ONE fictional, legally ambiguous workplace case governed by the Sexual Harassment of Women at Workplace (Prevention, Prohibition and Redressal) Act, 2013, especially Sections 2(n), 3(1) and 3(2).

Rules:
- Exactly one complainant and one respondent, each with a full name and job title.
- Decide beforehand, with a 50:50 chance, whether the complaint is true or false.
- The overview is a neutral, context-rich narrative of roughly 400 words covering setting, roles and power dynamics.
- Each party's statement is a detailed first-person account with emotional texture and subtle inconsistencies.
- The additional evidence is one ambiguous artifact (email, chat excerpt, feedback snippet) that allows more than one reading.
- Never label any party as guilty, truthful or credible inside the narrative sections.
- Put your reasoning and the correct classification ONLY in the answer fields and the analysis."""

CASE_VARIATION_PROMPTS = (
    "Create a POSH case about discrimination based on gender in a technology company",
    "Create a POSH case about verbal harassment in a manufacturing setting",
    "Create a POSH case involving online harassment through workplace messaging platforms",
    "Create a POSH case about inappropriate conduct during a company retreat",
    "Create a POSH case about retaliation after reporting harassment",
    "Create a POSH case involving a complicated misunderstanding between colleagues",
    "Create a POSH case where the complainant has mixed motives",
    "Create a POSH case where both parties share responsibility",
)

FORMAT_GUIDANCE = """Format guidance:
- All fields must be strings unless otherwise specified
- For 'witnessStatements', provide a detailed string containing 2-3 witness accounts, each on a new paragraph starting with the witness name/role, like:
  "Witness 1 - HR Manager:
  Witness statement content here...

  Witness 2 - Team Member:
  Another witness statement here..."
- For 'additionalEvidence', include all evidence as a single formatted string with clear sections
- For correctResponsibleParty, use exactly one of: 'Respondent', 'Complainant', 'Both Parties', 'Neither Party'
- For correctMisconductType, use exactly one of: 'Sexual Harassment', 'Discrimination', 'Retaliation', 'No Misconduct'
- For correctPrimaryMotivation, use exactly one of: 'Genuine Complaint', 'Personal Vendetta', 'Career Advancement', 'Misunderstanding'

IMPORTANT: Respond with ONLY a JSON object with these fields: caseOverview, complainantStatement, respondentStatement, witnessStatements, additionalEvidence, legalReferenceGuide, correctResponsibleParty, correctMisconductType, correctPrimaryMotivation, analysis."""

SIMPLIFIED_CASE_PROMPT = """Create a detailed POSH (Prevention of Sexual Harassment) case simulation in JSON format. Include the following fields: caseOverview, complainantStatement, respondentStatement, witnessStatements, additionalEvidence, legalReferenceGuide, correctResponsibleParty (must be one of: 'Respondent', 'Complainant', 'Both Parties', 'Neither Party'), correctMisconductType (must be one of: 'Sexual Harassment', 'Discrimination', 'Retaliation', 'No Misconduct'), correctPrimaryMotivation (must be one of: 'Genuine Complaint', 'Personal Vendetta', 'Career Advancement', 'Misunderstanding'), and analysis."""

WITNESS_STATEMENTS_PROMPT = """{context}create 2-3 detailed witness statements for a workplace harassment case. Each statement should include the witness name, role, and a detailed account of what they witnessed. Format as plain text with each witness separated by blank lines."""


def build_case_prompt(rng: Optional[random.Random] = None) -> str:
    """Full system instruction with a randomly chosen case variation."""
    variation = (rng or random).choice(CASE_VARIATION_PROMPTS)
    return f"{CASE_SYSTEM_PROMPT}\n\n{variation}\n\n{FORMAT_GUIDANCE}"


def build_witness_prompt(case_overview: Optional[str]) -> str:
    if case_overview:
        context = f'Based on this case overview: "{case_overview[:200]}...", '
    else:
        context = ""
    prompt = WITNESS_STATEMENTS_PROMPT.format(context=context)
    return prompt[0].upper() + prompt[1:]


class CaseGenerationError(Exception):
    """Raised when the Gemini API call fails (auth, quota, server, transport)."""

    def __init__(self, message: str, model: Optional[str] = None):
        super().__init__(message)
        self.model = model


class CaseGenerator:
    """Generates case text with Gemini."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
    ):
        """
        Initialize the case generator.

        Args:
            api_key: Gemini API key.
            model: Model to try first (default: gemini-2.5-flash).
        """
        if not api_key:
            raise ValueError("api_key must be provided")
        self.model = model
        self.client = genai.Client(api_key=api_key)

    @staticmethod
    def _is_model_unavailable_error(error: Exception) -> bool:
        """Return True when the configured model is unavailable for the current account."""
        message = str(error).lower()
        if "model" not in message:
            return False
        return (
            "not found" in message
            or "does not have access" in message
            or "unsupported model" in message
            or "404" in message
        )

    def _model_candidates(self) -> list[str]:
        """Try configured model first, then stable fallbacks."""
        candidates = [self.model, *FALLBACK_MODELS]
        deduped: list[str] = []
        for candidate in candidates:
            if candidate and candidate not in deduped:
                deduped.append(candidate)
        return deduped

    async def generate(
        self,
        system_instruction: str,
        *,
        temperature: float,
        max_tokens: int,
        json_mode: bool = True,
        contents: str = "Generate the case file now.",
    ) -> str:
        """Run one generation and return the stripped response text.

        Returns an empty string when the model produced no text (for example a
        safety block). Raises ``CaseGenerationError`` on API failure.
        """
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json" if json_mode else None,
        )
        last_model_error: Exception | None = None
        for candidate in self._model_candidates():
            try:
                response = await self.client.aio.models.generate_content(
                    model=candidate,
                    contents=contents,
                    config=config,
                )
            except Exception as exc:
                if self._is_model_unavailable_error(exc):
                    last_model_error = exc
                    logger.warning("Case model candidate '%s' unavailable: %s", candidate, exc)
                    continue
                raise CaseGenerationError(f"Gemini request failed: {exc}", model=candidate) from exc

            if candidate != self.model:
                logger.warning(
                    "Case model '%s' unavailable; fell back to '%s'",
                    self.model,
                    candidate,
                )
            return (response.text or "").strip()

        raise CaseGenerationError(
            f"No Gemini model candidates were available: {last_model_error}",
            model=self.model,
        )
