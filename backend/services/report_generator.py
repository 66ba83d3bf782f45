import json
import logging
import re
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from backend.config import settings
from backend.schemas.report import KeyFinding, StructuredReport
from backend.services.catalog import lookup, reference_range_for
from backend.services.errors import GenerationFailed, ReportGenerationError, UpstreamUnavailable

logger = logging.getLogger(__name__)

OLLAMA_MODEL = "llama3.2:latest"

FALLBACK_RECOMMENDATIONS = ["Continue current health maintenance", "Schedule routine follow-up"]
FALLBACK_ASSESSMENT = "Test results reviewed"
FALLBACK_INTERPRETATION = "Within expected range"
FALLBACK_SUMMARY = "AI analysis completed"

_JSON_OBJECT_RE = re.compile(r"\{.*\}", flags=re.DOTALL)

REPORT_SCHEMA_TEXT = """{
  "summary": "Executive summary of the test results",
  "keyFindings": [
    {
      "parameter": "parameter name",
      "value": "test value with unit",
      "referenceRange": "normal reference range with units",
      "status": "normal/abnormal/borderline",
      "interpretation": "clinical interpretation"
    }
  ],
  "recommendations": [
    "Clinical recommendation 1",
    "Clinical recommendation 2"
  ],
  "treatmentOptions": {
    "lifestyle": [
      "Lifestyle modification 1",
      "Lifestyle modification 2"
    ],
    "medical": [
      "Medical intervention 1",
      "Medical intervention 2"
    ],
    "medications": [
      "Common medication class/type if applicable"
    ]
  },
  "overallAssessment": "Overall clinical assessment",
  "followUpRequired": true/false,
  "criticalFlags": ["any critical issues if present"]
}"""

PROMPT_TEMPLATE = """As a medical AI assistant, analyze the following {test_type} test results and provide a comprehensive medical report in JSON format.

Patient Test Data:
Test Type: {test_type}
Parameters: {parameters}

Reference Ranges for {test_type} tests:
{reference_ranges}

Please provide a detailed analysis in the following JSON structure:
{schema}

Focus on:
1. Clinical significance of each parameter
2. Relationships between different test values
3. Potential health implications
4. Actionable recommendations for the physician
5. Any values outside normal ranges and their clinical significance

Provide accurate medical terminology and reference ranges appropriate for the test type."""


def build_prompt(test_type: str, parameters: Mapping[str, Any]) -> str:
    reference_ranges = "\n".join(
        f"- {item.name}: {item.normal_range} {item.unit}" for item in lookup(test_type)
    )
    return PROMPT_TEMPLATE.format(
        test_type=test_type,
        parameters=json.dumps(dict(parameters), indent=2, ensure_ascii=False),
        reference_ranges=reference_ranges,
        schema=REPORT_SCHEMA_TEXT,
    )


async def call_ollama(
    prompt: str,
    base_url: str | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Send ``prompt`` to the Ollama generate endpoint and return the raw completion text."""
    url = f"{(base_url or settings.ollama_url).rstrip('/')}/api/generate"
    payload = {"model": OLLAMA_MODEL, "prompt": prompt, "stream": False}
    request_timeout = timeout if timeout is not None else settings.ollama_timeout_seconds

    logger.info("Requesting report from %s using model %s", url, OLLAMA_MODEL)
    try:
        async with httpx.AsyncClient(timeout=request_timeout, transport=transport) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error("Ollama API error: %s", exc.response.status_code)
        raise UpstreamUnavailable(f"Ollama API error: {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        logger.error("Failed to reach Ollama at %s: %s", url, exc)
        raise UpstreamUnavailable(f"Failed to reach Ollama at {url}") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise GenerationFailed("Ollama returned a non-JSON body") from exc
    text = data.get("response") if isinstance(data, dict) else None
    if not isinstance(text, str):
        raise GenerationFailed("Ollama response is missing the 'response' field")
    return text


def extract_json_object(raw_text: str) -> dict | None:
    match = _JSON_OBJECT_RE.search(raw_text)
    if not match:
        return None
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def build_fallback_report(raw_text: str, test_type: str, parameters: Mapping[str, Any]) -> StructuredReport:
    """Deterministic report used when the model output holds no usable JSON.

    Every submitted parameter is reported as normal whatever its value.
    """
    first_line = raw_text.splitlines()[0] if raw_text else ""
    return StructuredReport(
        summary=first_line or FALLBACK_SUMMARY,
        key_findings=[
            KeyFinding(
                parameter=name,
                value=f"{value}",
                reference_range=reference_range_for(test_type, name),
                status="normal",
                interpretation=FALLBACK_INTERPRETATION,
            )
            for name, value in parameters.items()
        ],
        recommendations=list(FALLBACK_RECOMMENDATIONS),
        overall_assessment=FALLBACK_ASSESSMENT,
        follow_up_required=False,
        critical_flags=[],
        raw_response=raw_text,
    )


def parse_ai_response(raw_text: str, test_type: str, parameters: Mapping[str, Any]) -> StructuredReport:
    payload = extract_json_object(raw_text)
    if payload is None:
        logger.warning("No JSON object in model output; using fallback report")
        return build_fallback_report(raw_text, test_type, parameters)
    try:
        return StructuredReport.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Model JSON does not match the report schema (%d errors); using fallback report", exc.error_count())
        return build_fallback_report(raw_text, test_type, parameters)


async def generate_ai_report(test_type: str, parameters: Mapping[str, Any]) -> StructuredReport:
    try:
        prompt = build_prompt(test_type, parameters)
        raw_text = await call_ollama(prompt)
        return parse_ai_response(raw_text, test_type, parameters)
    except ReportGenerationError:
        raise
    except Exception as exc:
        logger.exception("Report generation failed: %s", exc)
        raise GenerationFailed(str(exc) or exc.__class__.__name__) from exc
