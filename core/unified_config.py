"""
Unified Configuration Management for the Google Voice export merger.

This module provides a single source of truth for all configuration options,
integrating command line arguments, .env files and environment variables.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.phone_book import MatchStrategy
from core.shared_constants import DEFAULT_LOG_FILENAME, LOGS_DIRNAME


class MergeConfig(BaseSettings):
    """
    Unified configuration model for the merger.

    This model automatically handles:
    - Command line arguments (via Click integration)
    - Environment variables (with GVOICE_MERGE_ prefix)
    - .env files
    - Type validation and conversion
    """

    model_config = SettingsConfigDict(
        env_prefix="GVOICE_MERGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
        str_strip_whitespace=True,
        case_sensitive=False,
    )

    # ====================================================================
    # INPUT / OUTPUT
    # ====================================================================

    input_dir: Path = Field(
        default=Path("Takeout") / "Voice" / "Calls",
        description="Directory containing the Google Voice export files (Takeout/Voice/Calls)"
    )

    output_dir: Path = Field(
        default=Path("output"),
        description="Directory receiving the merged conversations"
    )

    force: bool = Field(
        default=False,
        description="Delete the output directory if it already exists"
    )

    # ====================================================================
    # CONTACTS
    # ====================================================================

    contacts_file: Optional[Path] = Field(
        default=None,
        description="VCF address book used to resolve phone numbers to names"
    )

    match_strategy: MatchStrategy = Field(
        default=MatchStrategy.EXACT,
        description="Phone number matching strategy: exact or suffix"
    )

    suffix_length: Optional[int] = Field(
        default=None,
        ge=1,
        le=20,
        description="Shortest suffix accepted by the suffix matching strategy"
    )

    # ====================================================================
    # FILTERING
    # ====================================================================

    ignore_call_logs: bool = Field(
        default=False,
        description="Skip received, placed and missed call logs"
    )

    ignore_orphan_call_logs: bool = Field(
        default=False,
        description="Skip conversations made only of call logs"
    )

    ignore_media: bool = Field(
        default=False,
        description="Skip media files"
    )

    ignore_voicemails: bool = Field(
        default=False,
        description="Skip voicemails and recordings"
    )

    ignore_orphan_voicemails: bool = Field(
        default=False,
        description="Skip conversations made only of voicemails"
    )

    tolerate_missing_participants: bool = Field(
        default=False,
        description="Group conversations without participants under 'unknown' instead of failing"
    )

    # ====================================================================
    # EXPORTS
    # ====================================================================

    generate_csv: bool = Field(
        default=False,
        description="Generate a CSV index of the merged conversations"
    )

    generate_xml: bool = Field(
        default=False,
        description="Generate an SMS Backup & Restore XML export"
    )

    own_number: Optional[str] = Field(
        default=None,
        description="Your Google Voice number, used to tell sent from received messages"
    )

    phones_vcf: Optional[Path] = Field(
        default=None,
        description="Phones.vcf from the export, used to detect your own number"
    )

    # ====================================================================
    # LOGGING SETTINGS
    # ====================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Set specific log level"
    )

    log_filename: Optional[str] = Field(
        default=DEFAULT_LOG_FILENAME,
        description="Log filename inside the output logs directory"
    )

    verbose: bool = Field(
        default=False,
        description="Enable verbose logging (INFO level)"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug logging (DEBUG level)"
    )

    show_progress: bool = Field(
        default=True,
        description="Show progress bars while merging"
    )

    # ====================================================================
    # VALIDATORS
    # ====================================================================

    @field_validator('input_dir', 'output_dir', 'contacts_file', 'phones_vcf', mode='before')
    @classmethod
    def validate_paths(cls, v):
        """Convert string to Path and resolve to absolute path."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            v = Path(v)
        if isinstance(v, Path):
            return v.expanduser().resolve()
        return v

    @field_validator('match_strategy', mode='before')
    @classmethod
    def validate_match_strategy(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode='after')
    def validate_strategy_options(self):
        """Suffix matching needs a suffix length."""
        if self.match_strategy == MatchStrategy.SUFFIX and not self.suffix_length:
            raise ValueError(
                "Suffix matching requires --suffix-length (the shortest suffix that may match)"
            )
        return self

    @model_validator(mode='after')
    def validate_cli_conflicts(self):
        """Validate that CLI options don't conflict with each other."""
        errors = []

        if self.verbose and self.debug:
            errors.append(
                "Conflicting options: --verbose and --debug cannot be used together.\n"
                "  • --verbose sets logging to INFO level\n"
                "  • --debug sets logging to DEBUG level (includes verbose)\n"
                "  • Use --debug for maximum detail, or --verbose for moderate detail"
            )

        if self.output_dir == self.input_dir:
            errors.append("The output directory cannot be the input directory")
        elif self.output_dir in self.input_dir.parents:
            errors.append(
                f"The input directory {self.input_dir} lies inside the output directory "
                f"{self.output_dir}, which is replaced when --force is used"
            )

        if errors:
            raise ValueError("\n\n".join(errors))

        return self

    # ====================================================================
    # COMPUTED PROPERTIES
    # ====================================================================

    @property
    def effective_log_level(self) -> str:
        """Get the effective log level considering debug/verbose flags."""
        if self.debug:
            return 'DEBUG'
        elif self.verbose:
            return 'INFO'
        return self.log_level

    @property
    def logs_dir(self) -> Path:
        return self.output_dir / LOGS_DIRNAME

    @property
    def log_file_path(self) -> Optional[Path]:
        if not self.log_filename:
            return None
        return self.logs_dir / self.log_filename

    # ====================================================================
    # UTILITY METHODS
    # ====================================================================

    def validate_input_directory(self) -> bool:
        """Check that the input directory exists."""
        return self.input_dir.is_dir()

    def get_phones_vcf_path(self) -> Path:
        """Phones.vcf lives next to the Calls directory in a Takeout export."""
        if self.phones_vcf:
            return self.phones_vcf
        return self.input_dir.parent / "Phones.vcf"

    def resolve_own_number(self) -> Optional[str]:
        """Own number from the configuration, else from Phones.vcf."""
        if self.own_number:
            return self.own_number

        from utils.vcf_parser import extract_own_number_from_vcf
        return extract_own_number_from_vcf(self.get_phones_vcf_path())

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization."""
        return self.model_dump(exclude_none=True)
