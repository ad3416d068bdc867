# profile_normalizer.py
"""Map either profile serialization onto the canonical profile models.

Profiles reach the service in two shapes:

* the nested "original" shape, e.g. ``{"companyProfile": {"name": ...,
  "productsServices": [{"name": ..., "description": ...}], ...}}``
* the flat "normalized" shape, e.g. ``{"companyProfile": {"company_name": ...,
  "about_us": ..., "services_or_products": [...], "originalData": {...}}}``

Everything downstream of the extractor and the HTTP boundary only ever sees
:class:`~agent_builder.models.StructuredProfile`.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from .exceptions import FormValidationError
from .logging_utils import get_logger
from .models import CompanyProfile, IndividualProfile, StructuredProfile

logger = get_logger(__name__)

COMPANY_KEY = "companyProfile"
INDIVIDUAL_KEY = "individualProfile"
ORIGINAL_DATA_KEY = "originalData"

# flat key -> canonical field
COMPANY_FLAT_FIELDS = {
    "company_name": "name",
    "about_us": "about",
    "tagline": "tagline",
    "voice_tone": "tone_of_voice",
    "target_audience": "target_audience",
    "agent_greeting": "agent_greeting",
    "agent_intro": "agent_intro",
    "value_offer": "value_offer",
    "call_to_action": "call_to_action",
}

INDIVIDUAL_FLAT_FIELDS = {
    "full_name": "name",
    "bio": "about",
    "profession_or_role": "title",
    "headline": "headline",
    "voice_tone": "tone_of_voice",
    "target_audience": "target_audience",
    "agent_greeting": "agent_greeting",
    "agent_intro": "agent_intro",
    "value_offer": "value_offer",
    "call_to_action": "call_to_action",
}

RawProfile = Union[StructuredProfile, Mapping[str, Any]]


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value if item)
    return str(value)


def _as_list(value: Any) -> List[str]:
    """Coerce a string, list of strings or list of named dicts to labels."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    labels = []
    for item in value:
        if isinstance(item, Mapping):
            label = item.get("name") or item.get("title")
            if label:
                labels.append(str(label))
        elif item:
            labels.append(str(item))
    return labels


def _as_products(value: Any) -> List[Dict[str, str]]:
    if value is None:
        return []
    if isinstance(value, str):
        value = _as_list(value)
    products = []
    for item in value:
        if isinstance(item, Mapping):
            if item.get("name"):
                products.append({
                    "name": str(item["name"]),
                    "description": str(item.get("description") or ""),
                })
        elif item:
            products.append({"name": str(item), "description": ""})
    return products


def _set(merged: Dict[str, Any], field: str, value: Any) -> None:
    """Set a canonical field, dropping any camelCase spelling of it."""
    merged.pop(to_camel(field), None)
    merged[field] = value


def _set_label_list(merged: Dict[str, Any], field: str) -> None:
    """Replace either spelling of a list field with a clean label list."""
    nested = merged.pop(to_camel(field), None)
    merged[field] = _as_list(merged.pop(field, None) or nested)


def _merge_company(entity: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    original = entity.get(ORIGINAL_DATA_KEY)
    if isinstance(original, Mapping):
        merged.update(original)
    merged.update(
        {key: value for key, value in entity.items()
         if key != ORIGINAL_DATA_KEY and key not in COMPANY_FLAT_FIELDS}
    )

    for flat_key, field in COMPANY_FLAT_FIELDS.items():
        if entity.get(flat_key):
            _set(merged, field, _as_text(entity[flat_key]))

    nested_products = merged.pop("products_services", None)
    nested_products = merged.pop("productsServices", nested_products)
    products = entity.get("services_or_products")
    if products is None:
        products = nested_products
    merged["products_services"] = _as_products(products)

    if entity.get("use_case"):
        _set(merged, "use_cases", _as_list(entity["use_case"]))
    _set_label_list(merged, "support_actions")
    merged.pop("use_case", None)
    merged.pop("services_or_products", None)
    return merged


def _merge_individual(entity: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    original = entity.get(ORIGINAL_DATA_KEY)
    if isinstance(original, Mapping):
        merged.update(original)
    merged.update(
        {key: value for key, value in entity.items()
         if key != ORIGINAL_DATA_KEY and key not in INDIVIDUAL_FLAT_FIELDS}
    )

    for flat_key, field in INDIVIDUAL_FLAT_FIELDS.items():
        if entity.get(flat_key):
            _set(merged, field, _as_text(entity[flat_key]))

    skills = entity.get("skills")
    if skills is not None:
        _set(merged, "core_skills", _as_list(skills))
    services = entity.get("services_or_products") or entity.get("services")
    if services is not None:
        _set(merged, "services_offered", _as_list(services))
    _set_label_list(merged, "support_actions")

    for key in ("skills", "services", "services_or_products", "use_case"):
        merged.pop(key, None)
    return merged


def normalize_profile(raw: RawProfile, is_company: Optional[bool] = None) -> StructuredProfile:
    """Normalize a raw profile payload into a :class:`StructuredProfile`.

    Args:
        raw: Profile payload in either shape, wrapped in ``companyProfile`` /
            ``individualProfile`` or given as the bare entity dict.
        is_company: Which variant to read. When omitted it is inferred from
            the wrapper key present in ``raw``.

    Returns:
        The canonical profile.

    Raises:
        FormValidationError: If the payload is not a mapping, the variant
            cannot be determined or the data does not fit the model.
    """
    if isinstance(raw, StructuredProfile):
        return raw
    if not isinstance(raw, Mapping):
        raise FormValidationError("profileData", "Profile data must be a JSON object")

    if is_company is None:
        if COMPANY_KEY in raw or "company_profile" in raw:
            is_company = True
        elif INDIVIDUAL_KEY in raw or "individual_profile" in raw:
            is_company = False
        else:
            raise FormValidationError(
                "isCompany", "Cannot tell whether the profile describes a company"
            )

    if is_company:
        entity = raw.get(COMPANY_KEY, raw.get("company_profile"))
    else:
        entity = raw.get(INDIVIDUAL_KEY, raw.get("individual_profile"))

    if entity is None:
        if any(key in raw for key in (COMPANY_KEY, INDIVIDUAL_KEY,
                                      "company_profile", "individual_profile")):
            logger.warning(
                "Profile variant missing, using empty profile",
                extra={"is_company": is_company},
            )
            entity = {}
        else:
            entity = raw
    if not isinstance(entity, Mapping):
        raise FormValidationError("profileData", "Profile entry must be a JSON object")

    try:
        if is_company:
            return StructuredProfile(
                company_profile=CompanyProfile.model_validate(_merge_company(entity))
            )
        return StructuredProfile(
            individual_profile=IndividualProfile.model_validate(_merge_individual(entity))
        )
    except ValidationError as e:
        raise FormValidationError("profileData", f"Invalid profile data: {e}") from e
