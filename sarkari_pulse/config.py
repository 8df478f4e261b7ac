"""
Sarkari Pulse — Application Configuration
All scraper, store and API settings come from the environment / .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


def _split_values(raw: str) -> list[str]:
    """Split a pipe-separated list (category names contain commas)."""
    return [item.strip() for item in raw.split("|") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- App ---
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8080
    log_level: str = "INFO"
    api_requests_per_minute: int = 60

    # --- Store ---
    store_backend: str = "sqlite"            # "sqlite" or "supabase"
    sqlite_path: str = "data/schemes.sqlite3"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_table: str = "schemes"

    # --- Upstream: MyScheme search API ---
    myscheme_search_api: str = "https://api.myscheme.gov.in/search/v5/schemes"
    myscheme_base_url: str = "https://www.myscheme.gov.in"
    myscheme_referer: str = "https://www.myscheme.gov.in/search"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # --- Upstream: DOM-rendered list pages ---
    dbt_bharat_list_urls: str = "https://www.dbtbharat.gov.in/central-scheme/list"
    browser_enabled: bool = True
    browser_settle_seconds: float = 2.0

    # --- Fetch / politeness ---
    api_timeout_seconds: float = 20.0
    page_timeout_seconds: float = 30.0
    base_delay_ms: int = 500
    delay_step_ms: int = 50
    max_delay_ms: int = 5000
    rate_limit_cooldown_seconds: float = 30.0

    # --- Strategies ---
    default_strategies: str = "pagination"
    page_size: int = 100
    max_pages: int = 50
    empty_page_limit: int = 3
    enrich_max_details: int = 5
    search_keywords: str = "pm|pradhan mantri|yojana|scholarship|pension|farmer|women|loan|insurance|housing"
    scheme_categories: str = (
        "Agriculture,Rural & Environment|Banking,Financial Services and Insurance|"
        "Business & Entrepreneurship|Education & Learning|Health & Wellness|"
        "Housing & Shelter|Public Safety,Law & Justice|Science, IT & Communications|"
        "Skills & Employment|Social welfare & Empowerment|Sports & Culture|"
        "Transport & Infrastructure|Travel & Tourism|Utility & Sanitation|Women and Child"
    )
    beneficiary_states: str = (
        "Andhra Pradesh|Arunachal Pradesh|Assam|Bihar|Chhattisgarh|Goa|Gujarat|Haryana|"
        "Himachal Pradesh|Jharkhand|Karnataka|Kerala|Madhya Pradesh|Maharashtra|Manipur|"
        "Meghalaya|Mizoram|Nagaland|Odisha|Punjab|Rajasthan|Sikkim|Tamil Nadu|Telangana|"
        "Tripura|Uttar Pradesh|Uttarakhand|West Bengal|Jammu and Kashmir|Ladakh|Delhi|Puducherry"
    )
    nodal_ministries: str = (
        "Ministry of Agriculture and Farmers Welfare|Ministry of Education|"
        "Ministry of Health and Family Welfare|Ministry of Finance|"
        "Ministry of Rural Development|Ministry of Social Justice and Empowerment|"
        "Ministry of Women and Child Development|Ministry of Labour and Employment|"
        "Ministry of Housing and Urban Affairs|Ministry of Skill Development and Entrepreneurship"
    )

    # --- Derived ---
    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def has_supabase_config(self) -> bool:
        return bool(self.supabase_url and (self.supabase_service_role_key or self.supabase_anon_key))

    @property
    def keyword_list(self) -> list[str]:
        return _split_values(self.search_keywords)

    @property
    def category_list(self) -> list[str]:
        return _split_values(self.scheme_categories)

    @property
    def state_list(self) -> list[str]:
        return _split_values(self.beneficiary_states)

    @property
    def ministry_list(self) -> list[str]:
        return _split_values(self.nodal_ministries)

    @property
    def dbt_bharat_urls(self) -> list[str]:
        return _split_values(self.dbt_bharat_list_urls)

    @property
    def default_strategy_names(self) -> list[str]:
        return [s.strip() for s in self.default_strategies.split(",") if s.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Cached singleton for application settings."""
    return Settings()
