import re
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field, field_validator
import yaml


TEST_NAMES = (
    "run_container_creation_tests",
    "run_tests_no_root",
    "run_tests_no_pass",
    "run_tests_no_pass_altuid",
    "run_tests_no_root_altuid",
    "run_persistence_test",
    "run_change_password_test",
    "run_doc_test",
)
""" Names of available test cases in their default run order. """


class ConnectionConfig(BaseModel):
    max_attempts: int = Field(ge=1)
    retry_interval: float = Field(ge=0)


class RedisConfig(BaseModel):
    password: str = Field(min_length=1)
    changed_password: str = Field(min_length=1)
    alternate_uid: int = Field(ge=0)
    data_dir: str = Field(min_length=1)

    invalid_passwords: list[str] = Field(min_length=1)
    container_creation_timeout: float = Field(gt=0)


class DocConfig(BaseModel):
    help_file: str = Field(min_length=1)
    required_terms: list[str]


class Config(BaseModel):
    connection: ConnectionConfig
    redis: RedisConfig
    doc: DocConfig


class HarnessConfig(BaseModel):
    """ Per-run settings provided via environment variables or CLI options. """
    model_config = ConfigDict(extra="forbid")

    image_name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    os: str = Field(min_length=1)
    tests: list[str] = Field(default_factory=list)
    fail_quickly: bool = False
    debug: bool = False

    @field_validator("tests", mode="before")
    @classmethod
    def split_tests(cls, value):
        """ Allows `TESTS` to be passed as a whitespace or comma separated string. """
        if value is None:
            return []
        if isinstance(value, str):
            return [name for name in re.split(r"[\s,]+", value) if name]
        return value

    @field_validator("tests")
    @classmethod
    def validate_test_names(cls, value: list[str]) -> list[str]:
        unknown = [name for name in value if name not in TEST_NAMES]
        if unknown:
            raise ValueError(f"Unknown test names: {', '.join(unknown)}")
        return value

    @property
    def selected_tests(self) -> list[str]:
        """ Selected test names or all tests, if none were selected. """
        return self.tests if self.tests else list(TEST_NAMES)


def load_config() -> Config:
    path = Path(__file__).parent / "config.yml"
    with open(path) as f:
        data = yaml.safe_load(f)
    return Config(**data)
