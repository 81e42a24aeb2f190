"""Skill verification policy — when certifications and endorsements verify a skill.

Rules:
- Verification is opt-in. With default settings nothing verifies a skill;
  endorsements and certifications are recorded as evidence only.
- endorsements_required = N: N endorsements from distinct endorsers verify.
- certification_verifies = True: any attached certification verifies.
- Verification is monotonic — evaluate() never un-verifies a skill.

Self-endorsement and repeated endorsement are rejected upstream by the
skill registry, so every endorsement counted here comes from a distinct
third party.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from chainedin.models.skill import Endorsement, Skill


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of evaluating a skill against the policy."""
    verified: bool
    newly_verified: bool
    reason: str = ""


class SkillVerificationPolicy:
    """Decides whether a skill's evidence is enough to mark it verified.

    Parameters (via *config* dict):
        endorsements_required  : Optional[int] — distinct endorsements that
            verify a skill (default None: endorsements never verify)
        certification_verifies : bool — any certification verifies
            (default False)
    """

    def __init__(self, config: Optional[dict[str, Any]] = None) -> None:
        config = config or {}
        required = config.get("endorsements_required")
        if required is not None:
            required = int(required)
            if required < 1:
                raise ValueError(
                    f"endorsements_required must be >= 1, got {required}"
                )
        self._endorsements_required: Optional[int] = required
        self._certification_verifies = bool(
            config.get("certification_verifies", False)
        )

    @property
    def endorsements_required(self) -> Optional[int]:
        return self._endorsements_required

    @property
    def certification_verifies(self) -> bool:
        return self._certification_verifies

    def evaluate(
        self,
        skill: Skill,
        endorsements: list[Endorsement],
    ) -> VerificationResult:
        """Evaluate a skill's current evidence.

        Args:
            skill: The skill, with its certification list already updated.
            endorsements: All endorsements recorded for the skill.

        Returns:
            VerificationResult. The caller applies newly_verified.
        """
        if skill.verified:
            return VerificationResult(verified=True, newly_verified=False)

        if self._certification_verifies and skill.certification_ids:
            return VerificationResult(
                verified=True, newly_verified=True, reason="certification",
            )

        if self._endorsements_required is not None:
            endorsers = {e.endorser_id for e in endorsements}
            if len(endorsers) >= self._endorsements_required:
                return VerificationResult(
                    verified=True,
                    newly_verified=True,
                    reason=f"{len(endorsers)} endorsements",
                )

        return VerificationResult(verified=False, newly_verified=False)
