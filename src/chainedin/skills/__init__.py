"""Skills subsystem — declarations, certifications, endorsements and verification."""

from chainedin.skills.registry import SkillRegistry
from chainedin.skills.verification import SkillVerificationPolicy, VerificationResult

__all__ = [
    "SkillRegistry",
    "SkillVerificationPolicy",
    "VerificationResult",
]
