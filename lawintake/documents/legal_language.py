"""Rewrites client narratives into third-person legal Hebrew via Amazon Bedrock."""

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from lawintake.models.claim import CLAIM_FOLDER_NAMES, ClaimType
from lawintake.utils.config import TextGenerationConfig
from lawintake.utils.errors import (
    ConfigurationError,
    ErrorType,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """אתה עורך דין מומחה בדיני משפחה בישראל. תפקידך להמיר טקסט שכתב לקוח (גוף ראשון) לשפה משפטית מקצועית (גוף שלישי) שתופיע בכתב תביעה.

כללים חשובים:
1. המר מגוף ראשון לגוף שלישי - השתמש ב"המבקש/ת טוען/ת כי..." או "לטענת המבקש/ת..."
2. שמור על העובדות והמידע המדויק מהטקסט המקורי
3. השתמש בשפה משפטית מקצועית אך ברורה
4. שמור על סדר כרונולוגי ועל הקשר לוגי
5. אל תוסיף עובדות או טענות שלא היו בטקסט המקורי
6. הקפד על דקדוק ותחביר תקינים בעברית
7. השתמש במונחים משפטיים מקובלים בדיני משפחה בישראל"""

# Narrative fields worth rewriting, with the subject line given to the model
REWRITE_FIELDS: Dict[str, str] = {
    "relationshipDescription": "תיאור מערכת היחסים",
    "separationReason": "סיבת הפרידה",
    "childRelationship": "הקשר עם הילד",
    "propertyDescription": "תיאור הרכוש",
    "additionalInfo": "מידע נוסף",
    "remedies": "סעדים מבוקשים",
    "whoWantsDivorceAndWhy": "מי מבקש להתגרש ומדוע",
    "whoShouldHaveCustody": "עמדת המבקש/ת לגבי המשמורת",
}

RETRYABLE_ERRORS = {
    "ThrottlingException",
    "TooManyRequestsException",
    "ServiceUnavailableException",
    "InternalServerException",
    "ModelTimeoutException",
}


@dataclass
class RewriteContext:
    claim_type: str
    applicant_name: str
    respondent_name: str
    field_label: str


class LegalLanguageClient:
    """
    Bedrock Converse wrapper with retry logic.

    Authentication uses a Bedrock API key (bearer token); the key is required
    whenever rewriting is enabled.
    """

    def __init__(self, config: TextGenerationConfig, region: str = "us-east-1", runtime: Any = None):
        if not config.api_key:
            raise ConfigurationError.missing(
                "BEDROCK_API_KEY",
                "Text generation is enabled but no Bedrock API key is configured",
            )
        self.model_id = config.model_id
        self.max_retries = max(1, config.max_retries)

        if runtime is None:
            if not os.getenv("AWS_BEARER_TOKEN_BEDROCK"):
                os.environ["AWS_BEARER_TOKEN_BEDROCK"] = config.api_key
            boto_config = BotoConfig(
                region_name=region,
                connect_timeout=config.timeout,
                read_timeout=config.timeout,
                retries={"max_attempts": 0},  # retried below
                signature_version="bearer",
            )
            runtime = boto3.client("bedrock-runtime", config=boto_config)
        self.runtime = runtime

        logger.info(f"Initialized LegalLanguageClient: region={region}, model={self.model_id}")

    def rewrite(self, text: str, context: RewriteContext) -> str:
        """
        Rewrite one narrative.

        Raises:
            UpstreamServiceError: When Bedrock fails after retries or returns nothing
        """
        if not text or not text.strip():
            return ""

        user_prompt = (
            f"סוג התביעה: {context.claim_type}\n"
            f"שם המבקש/ת: {context.applicant_name}\n"
            f"שם הנתבע/ת: {context.respondent_name}\n"
            f"נושא השדה: {context.field_label}\n\n"
            f'טקסט מקורי מהלקוח:\n"""\n{text}\n"""\n\n'
            "המר את הטקסט לשפה משפטית מקצועית בגוף שלישי, כפי שתופיע בכתב תביעה. "
            "החזר רק את הטקסט המומר, ללא הסברים נוספים."
        )
        params = {
            "modelId": self.model_id,
            "system": [{"text": SYSTEM_PROMPT}],
            "messages": [{"role": "user", "content": [{"text": user_prompt}]}],
            "inferenceConfig": {"temperature": 0.3, "maxTokens": 2000},
        }

        for attempt in range(self.max_retries):
            try:
                response = self.runtime.converse(**params)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                logger.warning(
                    f"Bedrock error (attempt {attempt + 1}/{self.max_retries}): code={error_code}"
                )
                if error_code in RETRYABLE_ERRORS and attempt < self.max_retries - 1:
                    time.sleep(2 ** attempt)
                    continue
                raise UpstreamServiceError.from_client_error(
                    e, "converse", error_type=ErrorType.TEXT_GENERATION_FAILED
                )

            content = response.get("output", {}).get("message", {}).get("content", [])
            rewritten = "\n".join(block["text"] for block in content if "text" in block).strip()
            if not rewritten:
                raise UpstreamServiceError.request_failed(
                    "Bedrock", "converse", ValueError("empty response"),
                    error_type=ErrorType.TEXT_GENERATION_FAILED,
                )
            return rewritten

        raise UpstreamServiceError.request_failed(
            "Bedrock", "converse", RuntimeError(f"failed after {self.max_retries} attempts"),
            error_type=ErrorType.TEXT_GENERATION_FAILED,
        )


def rewrite_narratives(
    data: Dict[str, Any],
    claim_type: str,
    client: Optional[LegalLanguageClient],
    min_length: int = 50,
) -> Dict[str, Any]:
    """
    Return a copy of data with long narrative fields rewritten.

    Originals are kept under `{field}_original`. A field whose rewrite fails
    keeps the client's text. Child narratives are rewritten per child.
    """
    if client is None:
        return dict(data)

    result = dict(data)
    try:
        claim_name = CLAIM_FOLDER_NAMES[ClaimType(claim_type)]
    except ValueError:
        claim_name = claim_type
    applicant = str(data.get("fullName") or "")
    respondent = str(data.get("fullName2") or "")

    def _rewrite(text: str, key: str) -> Optional[str]:
        context = RewriteContext(claim_name, applicant, respondent, REWRITE_FIELDS[key])
        try:
            return client.rewrite(text, context)
        except UpstreamServiceError as exc:
            logger.warning(f"Keeping original text for '{key}': {exc}")
            return None

    for key in REWRITE_FIELDS:
        text = data.get(key)
        if isinstance(text, str) and len(text) > min_length:
            rewritten = _rewrite(text, key)
            if rewritten:
                result[f"{key}_original"] = text
                result[key] = rewritten

    children = []
    for child in data.get("children") or []:
        child = dict(child)
        text = child.get("childRelationship")
        if isinstance(text, str) and len(text) > min_length:
            rewritten = _rewrite(text, "childRelationship")
            if rewritten:
                child["childRelationship_original"] = text
                child["childRelationship"] = rewritten
        children.append(child)
    if children:
        result["children"] = children

    return result
