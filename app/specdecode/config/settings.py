from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional
import logging


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SPECDECODE_", case_sensitive=False)

    # Logging
    log_level: str = Field("INFO", description="Root log level")
    log_dir: str = Field("logs", description="Directory for the rotating JSON log file")
    log_to_file: bool = Field(False, description="Also write JSON logs to log_dir/app.log")

    # Input limits
    max_file_size: int = Field(512 * 1024 * 1024, description="Largest file the repository will load (bytes)")

    # OPUS
    opus_sample_id_key: str = Field("SNM", description="Text block key holding the sample ID")
    opus_add_trace: bool = Field(False, description="Copy the block trace into metadata (prefix Trace.)")

    # FOSS CAL
    cal_id_field: str = Field("ID", description="ID|Field1|Field2|Field3|<prefix>")
    cal_type_field: str = Field("Code", description="Code|Field1|Field2|Field3|ID|<sample type>")

    # Row selection for multi-record formats (1-based start, -1 for no limit)
    start: int = Field(1, description="Spectrum number to start loading from")
    max_spectra: int = Field(-1, description="Maximum spectra to load, -1 for all")

    # ASC
    asc_force_comma_to_point: bool = Field(True, description="Treat ',' as the decimal separator in ASC data rows")

    # Relab and SpecLib
    relab_use_filename_as_sample_id: bool = Field(False, description="Append the upper-case file name to the Relab sample ID")
    speclib_min_wave_number: float = Field(0.0, description="SpecLib rows below this wave number are ignored")
    speclib_max_wave_number: float = Field(3.4028234663852886e38, description="SpecLib rows above this wave number are ignored")
    speclib_min_amplitude: float = Field(0.0, description="SpecLib rows below this amplitude are ignored")
    speclib_max_amplitude: float = Field(3.4028234663852886e38, description="SpecLib rows above this amplitude are ignored")

    # Batch decoding
    batch_max_concurrency: int = Field(8, description="Upper bound of concurrent decodes in a batch")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("start")
    @classmethod
    def validate_start(cls, v):
        if v < 1:
            raise ValueError("start must be at least 1")
        return v

    @field_validator("max_spectra")
    @classmethod
    def validate_max_spectra(cls, v):
        if v == 0 or v < -1:
            raise ValueError("max_spectra must be -1 (unlimited) or a positive number")
        return v

    @field_validator("batch_max_concurrency", "max_file_size")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("Value must be positive")
        return v


def get_settings(**overrides: Optional[object]) -> Settings:
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
