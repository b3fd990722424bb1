"""Resource categories: search keywords, acceptable place types and the browse catalogue."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from . import config


@dataclass(frozen=True)
class CategoryProfile:
    key: str
    keywords: Tuple[str, ...]
    acceptable_types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CategoryInfo:
    key: str
    name: str
    description: str


_HEALTH_TYPES = ("hospital", "health", "doctor", "clinic")
_MENTAL_HEALTH_TYPES = ("health", "doctor", "hospital", "physiotherapist")
_LEGAL_TYPES = ("lawyer", "local_government_office")
_WELLNESS_TYPES = ("gym", "spa", "health")

_PROFILES: Tuple[CategoryProfile, ...] = (
    CategoryProfile(
        "healthcare",
        (
            "women's health services",
            "gynecology clinics",
            "obstetrics care",
            "reproductive health",
            "breast health screening",
            "prenatal care",
            "family planning services",
        ),
        _HEALTH_TYPES,
    ),
    CategoryProfile(
        "mentalhealth",
        (
            "mental health resources",
            "mental wellness",
            "emotional well-being",
            "psychological support",
            "behavioral health services",
            "depression support",
            "therapy services",
            "counseling centers",
            "group therapy",
            "self-help programs",
        ),
        _MENTAL_HEALTH_TYPES,
    ),
    CategoryProfile(
        "legal",
        (
            "legal aid for women",
            "family law assistance",
            "domestic violence legal help",
            "women rights advocacy",
            "child custody legal aid",
            "sexual harassment legal resources",
            "legal counseling for women",
        ),
        _LEGAL_TYPES,
    ),
    CategoryProfile(
        "safety",
        (
            "domestic violence shelters",
            "police stations",
            "she teams",
            "women crisis centers",
            "safety planning for women",
            "self-defense classes",
            "stalking support services",
            "intimate partner violence resources",
        ),
        ("police", "fire_station"),
    ),
    CategoryProfile(
        "childcare",
        (
            "affordable daycare",
            "single mother childcare assistance",
            "early childhood education",
            "after-school programs",
            "nanny services",
            "childcare providers",
        ),
        ("school", "day_care", "establishment"),
    ),
    CategoryProfile(
        "education",
        (
            "women education programs",
            "scholarships for women",
            "STEM programs for girls",
            "adult education for women",
            "women vocational training",
            "career training for women",
        ),
        ("school", "university"),
    ),
    CategoryProfile(
        "career",
        (
            "job search assistance for women",
            "career counseling for women",
            "networking events for women",
            "career advancement",
            "entrepreneurship for women",
        ),
        ("university", "establishment"),
    ),
    CategoryProfile(
        "financial",
        (
            "financial planning for women",
            "women investment groups",
            "retirement planning for women",
            "grants for women",
            "microloans for women entrepreneurs",
        ),
        ("bank", "finance"),
    ),
    CategoryProfile(
        "leadership",
        (
            "female leadership development",
            "women in leadership conferences",
            "mentorship programs for women",
            "leadership coaching for women",
            "public speaking for women",
        ),
        ("establishment",),
    ),
    CategoryProfile(
        "wellness",
        (
            "fitness classes for women",
            "nutrition advice for women",
            "yoga classes for women",
            "women health retreats",
            "mindfulness for women",
            "stress reduction techniques",
        ),
        _WELLNESS_TYPES,
    ),
    CategoryProfile(
        "supportgroups",
        (
            "support groups for women",
            "community support",
            "group therapy for women",
        ),
        ("establishment",),
    ),
    # LGBTQIA+ categories
    CategoryProfile(
        "lgbtq_healthcare",
        (
            "LGBTQIA+ friendly clinics",
            "LGBTQ health centers",
            "transgender health services",
        ),
        _HEALTH_TYPES,
    ),
    CategoryProfile(
        "lgbtq_mentalhealth",
        (
            "LGBTQIA+ counseling",
            "LGBTQ therapy services",
            "queer mental health support",
        ),
        _MENTAL_HEALTH_TYPES,
    ),
    CategoryProfile(
        "lgbtq_legalaid",
        (
            "LGBTQIA+ legal aid",
            "LGBTQ rights organizations",
            "gender identity legal services",
        ),
        _LEGAL_TYPES,
    ),
    CategoryProfile(
        "lgbtq_supportgroups",
        (
            "LGBTQIA+ support groups",
            "queer community centers",
            "LGBTQ peer support",
        ),
        ("establishment",),
    ),
    CategoryProfile(
        "lgbtq_education",
        (
            "LGBTQIA+ education programs",
            "queer studies programs",
            "LGBTQ scholarships",
        ),
        ("school", "university"),
    ),
    CategoryProfile(
        "lgbtq_career",
        (
            "LGBTQIA+ job support",
            "queer professional networks",
            "LGBTQ friendly employers",
        ),
        ("establishment",),
    ),
    CategoryProfile(
        "lgbtq_safety",
        (
            "LGBTQIA+ safe spaces",
            "anti-violence projects",
            "hate crime support services",
        ),
        ("police", "establishment"),
    ),
    CategoryProfile(
        "lgbtq_leadership",
        (
            "LGBTQIA+ leadership programs",
            "queer leadership conferences",
        ),
        ("establishment",),
    ),
    CategoryProfile(
        "lgbtq_wellness",
        (
            "LGBTQIA+ wellness programs",
            "queer fitness groups",
            "LGBTQ yoga classes",
        ),
        _WELLNESS_TYPES,
    ),
)

FALLBACK_PROFILE = CategoryProfile("default", (config.FALLBACK_KEYWORD,), ())

WOMEN_CATEGORIES: Tuple[CategoryInfo, ...] = (
    CategoryInfo("healthcare", "Healthcare", "Women health services and facilities"),
    CategoryInfo("mentalhealth", "Mental Health", "Emotional and psychological support"),
    CategoryInfo("legal", "Legal Aid", "Legal help for women in need"),
    CategoryInfo("safety", "Safety", "Safety resources and emergency contacts"),
    CategoryInfo("childcare", "Childcare", "Childcare and support services"),
    CategoryInfo("education", "Education", "Education programs and training"),
    CategoryInfo("career", "Career", "Career guidance and job support"),
    CategoryInfo("financial", "Financial", "Financial advice and grants"),
    CategoryInfo("leadership", "Leadership", "Leadership programs and events"),
    CategoryInfo("wellness", "Wellness", "Women's wellness and fitness"),
    CategoryInfo("support-groups", "Support Groups", "Support groups and community help"),
    CategoryInfo("fitness", "Fitness", "Fitness programs and activities"),
    CategoryInfo("housing", "Housing", "Housing support and shelters"),
    CategoryInfo("food-nutrition", "Food & Nutrition", "Food security and nutrition advice"),
)

LGBTQ_CATEGORIES: Tuple[CategoryInfo, ...] = (
    CategoryInfo("lgbtq_healthcare", "Healthcare", "Inclusive healthcare services for LGBTQIA+ individuals."),
    CategoryInfo("lgbtq_mentalhealth", "Mental Health", "Emotional and psychological support for LGBTQIA+."),
    CategoryInfo("lgbtq_legalaid", "Legal Aid", "Legal assistance and resources for LGBTQIA+ rights."),
    CategoryInfo("lgbtq_supportgroups", "Support Groups", "Community support groups and peer support."),
    CategoryInfo("lgbtq_education", "Education", "Educational resources and scholarships for LGBTQIA+."),
    CategoryInfo("lgbtq_career", "Career", "Career development and job support for LGBTQIA+ professionals."),
    CategoryInfo("lgbtq_safety", "Safety", "Resources and support for safety and anti-violence."),
    CategoryInfo("lgbtq_leadership", "Leadership", "Leadership programs and events for LGBTQIA+ individuals."),
    CategoryInfo("lgbtq_wellness", "Wellness", "Wellness programs and fitness activities for LGBTQIA+."),
)

CATEGORY_GROUPS: Dict[str, Tuple[CategoryInfo, ...]] = {
    "women": WOMEN_CATEGORIES,
    "lgbtq": LGBTQ_CATEGORIES,
}


def normalize_key(key: Optional[str]) -> str:
    # "support-groups", "supportgroups" and "Support_Groups" are the same category.
    return (key or "").strip().lower().replace("-", "").replace("_", "")


_PROFILES_BY_KEY: Dict[str, CategoryProfile] = {normalize_key(p.key): p for p in _PROFILES}


def _override_profiles() -> Dict[str, CategoryProfile]:
    return {
        normalize_key(key): CategoryProfile(
            key,
            tuple(entry["keywords"]),
            tuple(entry.get("acceptable_types") or ()),
        )
        for key, entry in config.CATEGORY_OVERRIDES.items()
    }


def lookup(category_key: Optional[str]) -> CategoryProfile:
    normalized = normalize_key(category_key)
    if not normalized:
        return FALLBACK_PROFILE
    override = _override_profiles().get(normalized)
    if override is not None:
        return override
    return _PROFILES_BY_KEY.get(normalized, FALLBACK_PROFILE)


def known_keys() -> List[str]:
    keys = {p.key for p in _PROFILES}
    keys.update(config.CATEGORY_OVERRIDES)
    return sorted(keys)


def search_categories(term: str, group: str = "women") -> List[CategoryInfo]:
    if group not in CATEGORY_GROUPS:
        raise ValueError(f"Unknown category group: {group}")
    needle = (term or "").casefold()
    return [c for c in CATEGORY_GROUPS[group] if needle in c.name.casefold()]
