"""
Guess material phases from XRD peak intensities with Gemini.

The peak array and a short list of candidate phases go into one templated
prompt; the reply is decoded as JSON and validated against the pydantic
schemas below before anything reaches the page. There is exactly one request
per action: no retries, no timeout handling.

Requirements
------------
pip install google-generativeai pydantic python-dotenv
Put your key in a `.env` (GEMINI_API_KEY=...) or export it in the shell.
"""

import json
import logging
import textwrap
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import google.generativeai as genai
from pydantic import BaseModel, ConfigDict, Field, ValidationError

import settings
from material_database import MaterialPhase, get_material_phases

logger = logging.getLogger(__name__)

FALLBACK_ERROR_MESSAGE = "Failed to identify material phases. Try again."

# placeholder 2θ, not derived from the pattern
TWO_THETA_START = 20.0
TWO_THETA_STEP = 5.0

PROMPT_TMPL = textwrap.dedent("""
    You are an expert material scientist specializing in X-ray diffraction (XRD) analysis.

    You are provided with XRD peak data and a list of possible material phases.
    Your task is to identify the material phases present in the sample based on the peak data.

    Peak Data: {peak_data}

    Possible Material Phases:
    {phase_lines}

    Analyze the peak data and identify the material phases that are most likely present.
    Provide a confidence score (0-1) for each identified phase.

    Respond strictly with valid JSON of the form:
    {{
      "identifiedPhases": [
        {{"name": "...", "crystalStructure": "...", "confidence": 0.0}}
      ]
    }}
""").strip()


class PhaseIdentificationError(RuntimeError):
    pass


class IdentifyMaterialPhasesInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    peak_data: List[float] = Field(
        alias="peakData",
        description="Array of peak intensities from the XRD pattern.",
    )


class IdentifiedPhaseResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(description="The name of the identified material phase.")
    crystal_structure: str = Field(
        alias="crystalStructure",
        description="The crystal structure of the material phase.",
    )
    confidence: float = Field(description="A confidence score (0-1) for the identification.")


class IdentifyMaterialPhasesOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identified_phases: List[IdentifiedPhaseResult] = Field(
        alias="identifiedPhases",
        description="List of identified material phases and their confidence scores.",
    )


@dataclass
class IdentifiedPhase:
    name: str
    crystal_structure: str
    confidence: float
    two_theta: Optional[float] = None


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"

    @property
    def is_destructive(self) -> bool:
        return self.variant == "destructive"


def _format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def build_prompt(peak_data: Sequence[float], material_phases: Sequence[MaterialPhase]) -> str:
    """Format the user prompt for one pattern and its candidate phases."""
    phase_lines = "\n".join(
        f"- Name: {phase.name}, Crystal Structure: {phase.crystal_structure}"
        for phase in material_phases
    )
    return PROMPT_TMPL.format(
        peak_data=",".join(_format_number(v) for v in peak_data),
        phase_lines=phase_lines,
    )


def ask_gemini(prompt: str) -> str:
    """Send the prompt once and return the raw reply text."""
    if not settings.GEMINI_API_KEY:
        raise PhaseIdentificationError("GEMINI_API_KEY environment variable is required")

    genai.configure(api_key=settings.GEMINI_API_KEY)
    model = genai.GenerativeModel(settings.GEMINI_MODEL)
    resp = model.generate_content(
        prompt,
        generation_config={
            "temperature": settings.GEMINI_TEMPERATURE,
            "response_mime_type": "application/json",
        },
    )
    return resp.text


def parse_model_response(text: str) -> IdentifyMaterialPhasesOutput:
    if not text or not text.strip():
        raise PhaseIdentificationError("Gemini returned an empty response")

    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    text = text.strip()

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as err:
        raise PhaseIdentificationError(f"Gemini returned invalid JSON:\n{text}") from err

    try:
        return IdentifyMaterialPhasesOutput.model_validate(payload)
    except ValidationError as err:
        raise PhaseIdentificationError(
            f"Gemini response does not match the expected schema: {err}"
        ) from err


def identify_material_phases(
        peak_data: Sequence[float],
        generate: Optional[Callable[[str], str]] = None,
) -> IdentifyMaterialPhasesOutput:
    generate = generate or ask_gemini
    request = IdentifyMaterialPhasesInput(peakData=list(peak_data))

    material_phases = get_material_phases(request.peak_data)
    prompt = build_prompt(request.peak_data, material_phases)
    logger.info(
        "Requesting phase identification: %d peaks, %d candidates",
        len(request.peak_data), len(material_phases),
    )
    return parse_model_response(generate(prompt))


def attach_two_theta(phases: Sequence[IdentifiedPhaseResult]) -> List[IdentifiedPhase]:
    return [
        IdentifiedPhase(
            name=phase.name,
            crystal_structure=phase.crystal_structure,
            confidence=phase.confidence,
            two_theta=TWO_THETA_START + index * TWO_THETA_STEP,
        )
        for index, phase in enumerate(phases)
    ]


def run_identification(
        peak_data: Sequence[float],
        identify: Optional[Callable[[Sequence[float]], IdentifyMaterialPhasesOutput]] = None,
) -> Tuple[Optional[List[IdentifiedPhase]], Notification]:
    """
    Page action behind the identify button. Never raises.

    Returns the new phase list (None when the previous list should stay on
    screen) and the notification to show.
    """
    identify = identify or identify_material_phases

    if not len(peak_data):
        return None, Notification("No data to analyze", "Please upload XRD data first.")

    try:
        result = identify(peak_data)
    except Exception as e:
        logger.exception("Error identifying phases")
        return None, Notification("Error", str(e) or FALLBACK_ERROR_MESSAGE, variant="destructive")

    return attach_two_theta(result.identified_phases), Notification(
        "Material phases identified", "Analysis complete."
    )
