from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import List, Optional
import yaml

CHECKS = ["links", "extlinks"]

@dataclass
class ExtLinkConfig:
    ignore_urls: List[str] = field(default_factory=list)  # regexes, matched against the whole URL
    ignore_url_redirects: bool = False
    workers: int = 8  # concurrent URL checks
    timeout: float = 10.0  # seconds, per HTTP request
    ftp_timeout: float = 10.0
    run_timeout: Optional[float] = None  # stop dispatching URL checks after this many seconds
    user_agent: str = "doccheck/0.1 (+link checker)"

@dataclass
class DocCheckConfig:
    checks: List[str] = field(default_factory=lambda: ["links"])
    files: List[str] = field(default_factory=list)
    base_dir: Optional[str] = None
    exclude: List[str] = field(default_factory=list)
    skip_subdirs: bool = False
    title: str = "DocCheck Report"
    report: Optional[str] = None  # .html|.json|text file, or a directory
    log_level: str = "INFO"
    telemetry_enabled: bool = False
    telemetry_endpoint: str = "http://localhost:4318/v1/traces"
    extlinks: ExtLinkConfig = field(default_factory=ExtLinkConfig)

    @staticmethod
    def write(path: str, cfg: 'DocCheckConfig'):
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(asdict(cfg), f, sort_keys=False, allow_unicode=True)

    @staticmethod
    def read(path: str) -> 'DocCheckConfig':
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        ext = data.pop("extlinks", None) or {}
        return DocCheckConfig(extlinks=ExtLinkConfig(**ext), **data)
