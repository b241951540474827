"""Legal registration lookups keyed by business name (Verifik)."""

from __future__ import annotations

from typing import Any, Dict

from leadgen.vendors.company_data import LookupProvider

ACTIVE_STATUSES = {"active", "good standing", "in existence", "current"}


class VerifikProvider(LookupProvider):
    """Verifies a business against US state registrations."""

    name = "verifik"
    base_url = "https://api.verifik.co/v2/usa/company"

    def _request(self, key: str) -> Dict[str, Any]:
        return {
            "url": self.base_url,
            "params": {"business": key},
            "headers": {"Authorization": f"Bearer {self._api_key}", "Accept": "application/json"},
        }

    def _parse(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = payload.get("data") or {}
        if not data:
            return {}

        status = data.get("status") or data.get("entityStatus")
        status = status.strip().lower() if isinstance(status, str) else None
        has_registration = bool(data.get("ein") or data.get("registrationNumber") or data.get("stateOfIncorporation"))

        return {
            "tax_id": data.get("ein"),
            "registration_state": data.get("stateOfIncorporation"),
            "business_status": status,
            "company_type": data.get("entityType"),
            "business_verified": has_registration and (status is None or status in ACTIVE_STATUSES),
        }
