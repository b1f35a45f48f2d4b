"""Application configuration via Pydantic Settings."""

from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SCOPE_WORDS = ("today", "yesterday", "today+yesterday", "unbounded", "")


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        env_parse_none_str="null",
    )

    # Fetch core
    FETCH_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)
    MAX_FETCH_ATTEMPTS: int = Field(default=3, ge=1)
    FETCH_JITTER_SECONDS: float = Field(default=0.0, ge=0)

    # Scope
    SCRAPE_SCOPE: str = "today"
    SCRAPE_PAGES_COUNT: Optional[int] = Field(default=1, ge=0)  # None = source ceiling

    # Sources
    SOURCES_TO_SCRAPE: str = "olx,gumtree"  # Comma-separated list of source slugs
    # JSON object in the environment, search URLs contain commas
    SEARCH_URLS: Dict[str, List[str]] = {
        "olx": [
            "https://www.olx.pl/nieruchomosci/mieszkania/sprzedaz/q-Warszawa/"
            "?search%5Bfilter_float_price%3Ato%5D=600000&view=galleryWide&page=",
        ],
        "gumtree": [
            "https://www.gumtree.pl/s-mieszkania-i-domy-sprzedam-i-kupie/warszawa/"
            "mieszkanie/v1c9073l3200008a1dwp1?pr=,600000&nr=10",
            "https://www.gumtree.pl/s-mieszkania-i-domy-sprzedam-i-kupie/warszawa/"
            "mieszkanie/v1c9073l3200008a1dwp1?pr=,600000&nr=2",
        ],
        "empik": [
            "https://www.empik.com/audiobooki-i-ebooki/ebooki,3501,s,{page_param}"
            "?sort=publishAsc&resultsPP=60",
        ],
    }

    # Scheduling
    RUN_INTERVALS: bool = True
    REFRESH_MINUTES: int = Field(default=240, ge=1)
    JOB_STAGGER_SECONDS: int = Field(default=30, ge=0)

    # Storage
    DATA_PATH: str = "./offers/"
    DATA_FILENAME: str = "offers"
    LOGS_PATH: str = "./logs/data/"
    SAVE_LOGS: bool = True
    SAVE_TO_SPREADSHEET: bool = True

    # Mail
    SEND_MAIL: bool = False
    SMTP_HOST: str = "smtp.mailgun.org"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    MAIL_FROM: str = ""
    MAIL_TO: str = ""  # Comma-separated list of recipients
    MAIL_NEW_RECORDS_SUBJECT: str = "[Oferty] Dodałem $new_records_count nowe oferty z $source!"
    MAIL_NEW_RECORDS_BODY: str = "Dodałem $new_records_count nowe oferty z $source!"
    MAIL_ERROR_SUBJECT: str = "[Oferty] Proces zakończył się niepowodzeniem!"
    MAIL_ERROR_BODY: str = (
        "Wystąpił błąd!<br/>$error_message<br/><br/>Baza ofert nie została zaktualizowana."
    )

    # Record filters
    FILTER_ENABLED: bool = True
    FILTER_SOURCES: str = "olx,gumtree"
    FILTER_CITY: str = "Warszawa"
    FILTER_MIN_BUILD_YEAR: int = 2000
    FILTER_EXCLUDED_DISTRICTS: str = (
        "rembertów,białołęka,ursus,bemowo,ochota,włochy,wesoła,wawer,wilanów"
    )
    FILTER_MAX_PRICE_PER_M2: float = 13000
    FILTER_MIN_PRICE: float = 300000
    FILTER_EXCLUDED_SELLER_NAME: str = "Biuro nieruchomości"

    # Browser
    BROWSER_HEADLESS: bool = True
    BROWSER_LOCALE: str = "pl-PL"
    BROWSER_TIMEZONE: str = "Europe/Warsaw"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # 'console' or 'json'

    @field_validator("SCRAPE_SCOPE")
    @classmethod
    def check_scope(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in SCOPE_WORDS:
            raise ValueError(f"SCRAPE_SCOPE must be one of {SCOPE_WORDS}, got {value!r}")
        return value

    @field_validator("LOG_FORMAT")
    @classmethod
    def check_log_format(cls, value: str) -> str:
        if value not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")
        return value

    @staticmethod
    def _split(raw: str) -> List[str]:
        return [p.strip() for p in raw.split(",") if p.strip()]

    def get_sources(self) -> List[str]:
        """Parse SOURCES_TO_SCRAPE into a list of source slugs."""
        return self._split(self.SOURCES_TO_SCRAPE)

    def get_search_urls(self, source: str) -> List[str]:
        """Search result URLs configured for a source.

        Args:
            source: Source slug (e.g., "olx")

        Returns:
            List of URL strings, empty if the source has none configured
        """
        return list(self.SEARCH_URLS.get(source, []))

    def get_mail_recipients(self) -> List[str]:
        """Parse MAIL_TO into a list of addresses."""
        return self._split(self.MAIL_TO)

    def get_excluded_districts(self) -> List[str]:
        return [d.lower() for d in self._split(self.FILTER_EXCLUDED_DISTRICTS)]

    def get_filter_sources(self) -> List[str]:
        return self._split(self.FILTER_SOURCES)


settings = Settings()
