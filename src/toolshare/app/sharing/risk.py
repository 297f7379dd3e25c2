"""Risky-share classification and creation confirmation rituals.

A link is risky when it exposes notes or photos, is unscoped, and the
tool has three or more groups. Risky links need the creator to type the
exact word ``SHARE``; all other links need an acknowledgment checkbox.

This is a client-side gate. The create endpoint does not re-derive or
enforce it; ``POST .../share-token/risk`` only reports the classification.
"""

from __future__ import annotations

from dataclasses import dataclass

from .model import ShareFlags, ShareScope

RISKY_GROUP_THRESHOLD = 3
CONFIRMATION_WORD = 'SHARE'

CONFIRM_TYPED = 'typed'
CONFIRM_CHECKBOX = 'checkbox'


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    risky: bool
    exposes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Confirmation:
    """Which ritual the creation form must complete before enabling create."""

    kind: str
    word: str | None = None

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'word': self.word}


def classify(
    flags: ShareFlags, scope: ShareScope, total_group_count: int,
) -> RiskAssessment:
    exposes = tuple(
        name for name, on in (
            ('notes', flags.include_notes),
            ('photos', flags.include_photos),
        )
        if on
    )
    risky = (
        bool(exposes)
        and scope.is_all
        and total_group_count >= RISKY_GROUP_THRESHOLD
    )
    return RiskAssessment(risky=risky, exposes=exposes if risky else ())


def required_confirmation(assessment: RiskAssessment) -> Confirmation:
    if assessment.risky:
        return Confirmation(kind=CONFIRM_TYPED, word=CONFIRMATION_WORD)
    return Confirmation(kind=CONFIRM_CHECKBOX)


def is_confirmed(
    confirmation: Confirmation,
    *,
    typed_text: str = '',
    acknowledged: bool = False,
) -> bool:
    """Whether the form input satisfies ``confirmation``.

    Typed confirmation is an exact, case-sensitive match.
    """
    if confirmation.kind == CONFIRM_TYPED:
        return typed_text == confirmation.word
    return acknowledged
