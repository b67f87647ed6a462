"""
Harness configuration: YAML settings, endpoint credentials and paths.

Credentials can be kept out of the YAML file and supplied through the
environment (or a .env file) as HARNESS_<ENDPOINT>_URL / _USERNAME / _PASSWORD.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

LOCAL_CURRENCY = "Local"

DEFAULT_CONFIG_PATH = Path("config/harness.yaml")


@dataclass
class NetAmountRange:
    """Inclusive bounds for randomly generated prepayment amounts."""
    min: int = 1000
    max: int = 10000


@dataclass
class ScenarioWeights:
    """Repeated-entry weights for sub-scenarios within one delivery direction."""
    happy: int = 0
    no_prepayment: int = 0
    diff_prepayment: int = 0


@dataclass
class CaseWeights:
    """How many cases to draw and how often each shape appears."""
    total: int = 0
    relationships: Dict[str, int] = field(default_factory=dict)
    under_delivery: ScenarioWeights = field(default_factory=ScenarioWeights)
    over_delivery: ScenarioWeights = field(default_factory=ScenarioWeights)


@dataclass
class EndpointConfig:
    """One outbound HTTP endpoint."""
    url: str
    username: str
    password: str
    timeout: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class CompanyConfig:
    """Per-company settings."""
    code: str
    currency: str = "USD"
    sold_to_party: str = "Unknown"
    # currency type -> number of additional prepayments after the initial one
    prepayments: Dict[str, int] = field(default_factory=dict)


@dataclass
class PathsConfig:
    """File locations used by the workflow steps."""
    prepayment_templates: Path = Path("config/templates/prepayment")
    delivery_templates: Path = Path("config/templates/delivery")
    identifier_pool: Path = Path("data/used_identifiers.json")
    case_records: Path = Path("data/case_records.json")
    prepayment_tracking: Path = Path("data/prepayment_tracking.json")
    delivery_input: Path = Path("data/prepayment_data.json")
    output_dir: Path = Path("output")
    processing_results: Path = Path("output/processing_results.csv")
    workbook: Path = Path("output/transformed_prepayment_scenarios.xlsx")


@dataclass
class HarnessConfig:
    """Top-level harness configuration."""
    is_equal: bool = False
    max_one_to_many: int = 3
    many_to_one_records: int = 2
    request_delay: float = 0.1
    mint_max_attempts: int = 1000
    prepayment_id_length: int = 8
    delivery_id_length: int = 9
    prepayment_currency: str = LOCAL_CURRENCY
    net_amount: NetAmountRange = field(default_factory=NetAmountRange)
    cases: CaseWeights = field(default_factory=CaseWeights)
    companies: Dict[str, CompanyConfig] = field(default_factory=dict)
    endpoints: Dict[str, EndpointConfig] = field(default_factory=dict)
    paths: PathsConfig = field(default_factory=PathsConfig)

    def endpoint(self, name: str) -> EndpointConfig:
        """Get an endpoint by name, raising ConfigError if it is not configured."""
        if name not in self.endpoints:
            raise ConfigError(f"Missing endpoint configuration: {name}")
        return self.endpoints[name]

    def company_currencies(self) -> Dict[str, str]:
        return {code: c.currency for code, c in self.companies.items()}

    def sold_to_parties(self) -> Dict[str, str]:
        return {code: c.sold_to_party for code, c in self.companies.items()}


def load_config(
    config_path: Optional[Path] = None,
    env_file: Optional[Path] = None,
) -> HarnessConfig:
    """
    Load harness configuration from YAML.

    Args:
        config_path: Path to the YAML file (defaults to config/harness.yaml)
        env_file: Optional .env file holding endpoint credentials

    Returns:
        Parsed HarnessConfig

    Raises:
        ConfigError: if the file is missing, not a mapping, or incomplete
    """
    config_path = Path(config_path or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    load_dotenv(env_file)

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")

    config = parse_config(data)
    logger.debug("Loaded config from %s (is_equal=%s)", config_path, config.is_equal)
    return config


def parse_config(data: Dict[str, Any]) -> HarnessConfig:
    """Build a HarnessConfig from an already-parsed mapping."""
    net_data = data.get("net_amount", {}) or {}
    net_amount = NetAmountRange(
        min=int(net_data.get("min", NetAmountRange.min)),
        max=int(net_data.get("max", NetAmountRange.max)),
    )
    if net_amount.min > net_amount.max:
        raise ConfigError(
            f"net_amount.min ({net_amount.min}) is greater than net_amount.max ({net_amount.max})"
        )

    config = HarnessConfig(
        is_equal=bool(data.get("is_equal", False)),
        max_one_to_many=int(data.get("max_one_to_many", 3)),
        many_to_one_records=int(data.get("many_to_one_records", 2)),
        request_delay=float(data.get("request_delay", 0.1)),
        mint_max_attempts=int(data.get("mint_max_attempts", 1000)),
        prepayment_id_length=int(data.get("prepayment_id_length", 8)),
        delivery_id_length=int(data.get("delivery_id_length", 9)),
        prepayment_currency=str(data.get("prepayment_currency", LOCAL_CURRENCY)),
        net_amount=net_amount,
        cases=_parse_cases(data.get("cases", {}) or {}),
        companies=_parse_companies(data.get("companies", {}) or {}),
        endpoints=_parse_endpoints(data.get("endpoints", {}) or {}),
        paths=_parse_paths(data.get("paths", {}) or {}),
    )
    return config


def _parse_scenario_weights(data: Dict[str, Any]) -> ScenarioWeights:
    return ScenarioWeights(
        happy=int(data.get("Happy", 0) or 0),
        no_prepayment=int(data.get("NoPrepayment", 0) or 0),
        diff_prepayment=int(data.get("DiffPrepayment", 0) or 0),
    )


def _parse_cases(data: Dict[str, Any]) -> CaseWeights:
    relationships = {
        str(name): int(count or 0)
        for name, count in (data.get("relationships", {}) or {}).items()
    }
    return CaseWeights(
        total=int(data.get("total", 0) or 0),
        relationships=relationships,
        under_delivery=_parse_scenario_weights(data.get("UnderDelivery", {}) or {}),
        over_delivery=_parse_scenario_weights(data.get("OverDelivery", {}) or {}),
    )


def _parse_companies(data: Dict[str, Any]) -> Dict[str, CompanyConfig]:
    companies = {}
    for code, comp_data in data.items():
        comp_data = comp_data or {}
        companies[str(code)] = CompanyConfig(
            code=str(code),
            currency=str(comp_data.get("currency", "USD")),
            sold_to_party=str(comp_data.get("sold_to_party", "Unknown")),
            prepayments={
                str(k): int(v or 0)
                for k, v in (comp_data.get("prepayments", {}) or {}).items()
            },
        )
    return companies


def _parse_endpoints(data: Dict[str, Any]) -> Dict[str, EndpointConfig]:
    endpoints = {}
    for name, ep_data in data.items():
        ep_data = ep_data or {}
        env_prefix = f"HARNESS_{str(name).upper()}"
        url = os.environ.get(f"{env_prefix}_URL", ep_data.get("url"))
        username = os.environ.get(f"{env_prefix}_USERNAME", ep_data.get("username"))
        password = os.environ.get(f"{env_prefix}_PASSWORD", ep_data.get("password"))

        if not url or not username or not password:
            raise ConfigError(f"Missing endpoint configuration for '{name}' (url/username/password)")

        endpoints[str(name)] = EndpointConfig(
            url=str(url),
            username=str(username),
            password=str(password),
            timeout=float(ep_data.get("timeout", 30.0)),
            headers={str(k): str(v) for k, v in (ep_data.get("headers", {}) or {}).items()},
        )
    return endpoints


def _parse_paths(data: Dict[str, Any]) -> PathsConfig:
    defaults = PathsConfig()
    values = {}
    for name in defaults.__dataclass_fields__:
        values[name] = Path(data[name]) if name in data else getattr(defaults, name)
    return PathsConfig(**values)
