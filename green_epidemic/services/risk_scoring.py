"""
risk_scoring.py — Additive symptom / severity / age risk scoring.

Pure functions only: no I/O, no hidden state, so the same inputs always
give the same RiskResult.

USAGE
─────
    from green_epidemic.services.risk_scoring import assess_risk

    result = assess_risk(["High fever", "rash"], severity=3, age=70)
    # result.score          → 75   (30 + 20 age + 25 high-risk symptom)
    # result.risk_level     → "HIGH"
    # result.priority       → "URGENT"
    # result.recommendation → "CLINIC_VISIT"
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

# ── Weights ───────────────────────────────────────────────────────────────────

_SEVERITY_WEIGHT   = 10
_CRITICAL_BONUS    = 50
_HIGH_RISK_BONUS   = 25

CRITICAL_SYMPTOMS = (
    "cannot breathe",
    "cardiac arrest",
    "unconscious",
    "severe bleeding",
    "severe burns",
)

HIGH_RISK_SYMPTOMS = (
    "difficulty breathing",
    "chest pain",
    "severe headache",
    "confusion",
    "high fever",
    "severe vomiting",
    "severe abdominal pain",
    "loss of consciousness",
    "severe allergic reaction",
)

# ── Tier thresholds ───────────────────────────────────────────────────────────

_CRITICAL_THRESHOLD = 80
_HIGH_THRESHOLD     = 60
_MEDIUM_THRESHOLD   = 40


@dataclass(frozen=True)
class RiskResult:
    risk_level: str
    priority: str
    recommendation: str
    score: int


def age_bonus(age: int) -> int:
    """Elderly and infant patients carry extra baseline risk."""
    if age >= 65:
        return 20
    if age >= 50:
        return 10
    if age <= 2:
        return 15
    return 0


def _matches_any(symptom: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in symptom for keyword in keywords)


def compute_risk_score(symptoms: Iterable[str] | None, severity: int, age: int) -> tuple[int, bool, bool]:
    """
    Return (score, has_critical, has_high_risk).

    Each symptom counts at most once: a critical match takes precedence
    over a high-risk match for the same symptom. Non-string entries are
    ignored.
    """
    score = severity * _SEVERITY_WEIGHT + age_bonus(age)
    has_critical = False
    has_high_risk = False

    for symptom in symptoms or ():
        if not isinstance(symptom, str):
            continue
        lowered = symptom.lower()
        if _matches_any(lowered, CRITICAL_SYMPTOMS):
            has_critical = True
            score += _CRITICAL_BONUS
        elif _matches_any(lowered, HIGH_RISK_SYMPTOMS):
            has_high_risk = True
            score += _HIGH_RISK_BONUS

    return score, has_critical, has_high_risk


def assess_risk(symptoms: Iterable[str] | None, severity: int, age: int) -> RiskResult:
    """Score a symptom report and map it to a risk tier."""
    score, has_critical, has_high_risk = compute_risk_score(symptoms, severity, age)

    if has_critical or score >= _CRITICAL_THRESHOLD:
        return RiskResult("CRITICAL", "EMERGENCY", "EMERGENCY", score)
    if has_high_risk or score >= _HIGH_THRESHOLD:
        return RiskResult("HIGH", "URGENT", "CLINIC_VISIT", score)
    if score >= _MEDIUM_THRESHOLD:
        return RiskResult("MEDIUM", "URGENT", "TELEHEALTH", score)
    return RiskResult("LOW", "ROUTINE", "SELF_CARE", score)
