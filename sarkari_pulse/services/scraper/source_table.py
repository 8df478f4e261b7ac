"""
Sarkari Pulse — Source Table
Data-driven extraction hints per upstream source. A new portal is added
by adding a row here, not a new scraper module.
"""

from dataclasses import dataclass, field


# Logical attribute -> alternate field names, highest priority first.
MYSCHEME_FIELD_MAP: dict[str, list[str]] = {
    "name": ["schemeName", "schemeShortTitle", "name", "title", "scheme_name"],
    "description": ["briefDescription", "schemeDescription", "description", "summary", "brief"],
    "ministry": ["nodalMinistryName", "sponsoringMinistry", "ministry", "sponsoring_ministry"],
    "department": ["nodalDepartmentName", "sponsoringDepartment", "department", "sponsoring_department"],
    "target_audience": ["schemeFor", "beneficiaryType", "targetAudience", "target_audience"],
    "sector": ["schemeCategory", "category", "sector", "scheme_category"],
    "level": ["level"],
    "beneficiary_state": ["beneficiaryState", "state"],
    "launch_date": ["launchDate", "launch_date", "createdDate"],
    "slug": ["slug"],
    "url": ["schemeUrl", "url", "officialWebsite"],
}

ID_FIELDS = ["id", "_id", "schemeId", "scheme_id"]

# Wrappers some APIs put around the actual record.
ITEM_WRAPPERS = ["fields", "_source"]

SCHEME_KEYWORDS = ["scheme", "yojana", "program"]

# Detail-page attribute -> CSS selectors, highest priority first.
MYSCHEME_DETAIL_SELECTORS: dict[str, list[str]] = {
    "description": ["#details", ".scheme-details", ".scheme-description", "[class*='description']"],
    "eligibility": ["#eligibility", ".eligibility", ".eligibility-criteria", "[class*='eligib']", ".criteria"],
    "benefits": ["#benefits", ".benefits", ".scheme-benefits", "[class*='benefit']"],
    "application_process": ["#application-process", ".application-process", ".how-to-apply", "[class*='apply']"],
    "documents_required": ["#documents-required", ".documents", ".document-list", "[class*='document']"],
    "ministry": [".ministry", ".sponsoring-ministry", "[class*='ministry']"],
}

# List items are joined when present, before falling back to the block text.
MYSCHEME_DETAIL_LIST_SELECTORS: dict[str, list[str]] = {
    "documents_required": [".documents li", ".document-list li", "#documents-required li"],
}


@dataclass(frozen=True)
class SourceProfile:
    """How to pull candidate schemes out of one upstream source's payloads."""
    name: str
    kind: str                                   # "json" or "html"
    base_url: str = ""
    detail_url_template: str = ""               # formatted with slug=...
    list_paths: list[str] = field(default_factory=list)
    field_map: dict[str, list[str]] = field(default_factory=dict)
    container_selectors: list[str] = field(default_factory=list)
    name_selectors: list[str] = field(default_factory=list)
    description_selectors: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=lambda: list(SCHEME_KEYWORDS))
    min_line_length: int = 10
    max_line_length: int = 200
    default_level: str = ""
    detail_selectors: dict[str, list[str]] = field(default_factory=dict)
    detail_list_selectors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def detail_url_prefix(self) -> str:
        """Fixed part of the detail URL, used to tell which records have a detail page."""
        return self.detail_url_template.split("{", 1)[0]


SOURCE_TABLE: dict[str, SourceProfile] = {
    "myscheme": SourceProfile(
        name="myscheme",
        kind="json",
        base_url="https://www.myscheme.gov.in",
        detail_url_template="https://www.myscheme.gov.in/schemes/{slug}",
        list_paths=["data.hits.items", "results", "hits", "data", "schemes"],
        field_map=MYSCHEME_FIELD_MAP,
        detail_selectors=MYSCHEME_DETAIL_SELECTORS,
        detail_list_selectors=MYSCHEME_DETAIL_LIST_SELECTORS,
    ),
    "dbt_bharat": SourceProfile(
        name="dbt_bharat",
        kind="html",
        base_url="https://www.dbtbharat.gov.in",
        container_selectors=[
            ".scheme-card", ".scheme-item", ".result-item", ".search-result",
            ".card", ".list-group-item", "table tbody tr", "table tr",
            "[class*='scheme']",
        ],
        name_selectors=[
            ".scheme-name", ".card-title", ".title", ".name",
            "h1", "h2", "h3", "h4", "h5", "h6",
            "a", "td", "strong", "b",
        ],
        description_selectors=[
            ".scheme-description", ".card-text", ".description", ".summary",
            "p", ".content", "[class*='desc']",
        ],
        default_level="Central",
    ),
}


def get_source_profile(name: str) -> SourceProfile:
    return SOURCE_TABLE[name]
