"""
Caller identity.

Authentication happens upstream; the JWT it issues carries the patient id as
``sub`` plus profile claims. Routes convert the token into an ``Identity`` and
pass it explicitly into the booking engine.
"""
from dataclasses import dataclass
from typing import Optional

from flask_jwt_extended import get_jwt, get_jwt_identity

STAFF_ROLES = ('doctor', 'admin')


@dataclass(frozen=True)
class Identity:
    patient_id: str
    role: str = 'patient'
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES

    def can_view(self, patient_id):
        return self.is_staff or str(patient_id) == str(self.patient_id)


def current_identity():
    """Build the Identity for the current JWT. Must run under @jwt_required()."""
    claims = get_jwt()
    return Identity(
        patient_id=str(get_jwt_identity()),
        role=claims.get('role', 'patient'),
        name=claims.get('name'),
        email=claims.get('email'),
        phone=claims.get('phone'),
        country=(claims.get('country') or '').upper() or None,
    )
