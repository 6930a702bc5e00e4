"""Claim type catalogue and pricing."""

from enum import Enum
from typing import Dict, Iterable, List


class ClaimType(str, Enum):
    """Legal claim types a user can file through the wizard."""

    DIVORCE_AGREEMENT = "divorceAgreement"
    DIVORCE = "divorce"
    PROPERTY = "property"
    CUSTODY = "custody"
    ALIMONY = "alimony"


CLAIM_LABELS: Dict[ClaimType, str] = {
    ClaimType.DIVORCE_AGREEMENT: "הסכם גירושין",
    ClaimType.DIVORCE: "תביעת גירושין/כתב הגנה גירושין",
    ClaimType.PROPERTY: "תביעת/כתב הגנה רכושית",
    ClaimType.CUSTODY: "תביעת/כתב הגנה משמורת",
    ClaimType.ALIMONY: "תביעת/כתב הגנה מזונות",
}

CLAIM_DESCRIPTIONS: Dict[ClaimType, str] = {
    ClaimType.DIVORCE_AGREEMENT: "הסכם מוסכם בין הצדדים לגבי רכוש, משמורת ומזונות",
    ClaimType.DIVORCE: "תביעה לבית הדין הרבני לגירושין",
    ClaimType.PROPERTY: "חלוקת רכוש משותף, דירות, רכבים, חסכונות וחובות",
    ClaimType.CUSTODY: "הסדרת משמורת הילדים וזמני שהות",
    ClaimType.ALIMONY: "מזונות ילדים ומדור, כולל הרצאת פרטים (טופס 4)",
}

# Folder and file names used when a claim's documents are uploaded
CLAIM_FOLDER_NAMES: Dict[ClaimType, str] = {
    ClaimType.DIVORCE: "תביעת גירושין",
    ClaimType.CUSTODY: "תביעת משמורת",
    ClaimType.PROPERTY: "תביעה רכושית",
    ClaimType.ALIMONY: "תביעת מזונות",
    ClaimType.DIVORCE_AGREEMENT: "הסכם גירושין",
}

CLAIM_FILE_STEMS: Dict[ClaimType, str] = {
    ClaimType.DIVORCE: "תביעת-גירושין",
    ClaimType.CUSTODY: "תביעת-משמורת",
    ClaimType.PROPERTY: "תביעת-רכושית",
    ClaimType.ALIMONY: "תביעת-מזונות",
    ClaimType.DIVORCE_AGREEMENT: "הסכם-גירושין",
}

PRICE_PER_CLAIM = 3900


def is_claim_type(value: str) -> bool:
    try:
        ClaimType(value)
    except ValueError:
        return False
    return True


def parse_claims(values: Iterable[str]) -> List[ClaimType]:
    """Parse claim tags, dropping duplicates while keeping order. Raises ValueError on unknown tags."""
    claims: List[ClaimType] = []
    for value in values:
        claim = ClaimType(value)
        if claim not in claims:
            claims.append(claim)
    return claims


def claim_label(claim: ClaimType) -> str:
    return CLAIM_LABELS[ClaimType(claim)]


def calculate_total(claims: Iterable[str], price_per_claim: int = PRICE_PER_CLAIM) -> int:
    """Total price: a fixed amount per selected claim."""
    return len(set(claims)) * price_per_claim
