# === FILE: sitemap_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации аудита SitemapScout.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlparse

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
)


class SiteConfig(BaseModel):
    """Один корневой sitemap и связанный с ним идентификатор сайта."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: HttpUrl = Field(..., description="URL корневого sitemap (index или urlset).")
    site_id: str = Field("", description="Идентификатор сайта для opportunity-документа.")


class HostPolicy(BaseModel):
    """Дополнительные заголовки для хоста и всех его поддоменов."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(..., min_length=1, description="Имя хоста или его суффикс.")
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("host", mode="before")
    def _clean_host(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower().lstrip(".")
        return v

    def matches(self, hostname: str) -> bool:
        hostname = hostname.lower()
        return hostname == self.host or hostname.endswith("." + self.host)


class AuditConfig(BaseModel):
    """Конфигурация для одного запуска аудита."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    sitemaps: List[SiteConfig] = Field(default_factory=list, description="Корневые sitemap.")
    concurrency: int = Field(10, ge=1, description="Максимум одновременных запросов.")
    timeout: float = Field(15.0, gt=0, description="Таймаут на один запрос (секунд).")
    user_agent: str = Field("SitemapScoutBot/1.0", min_length=1, description="Заголовок User-Agent.")
    probe_method: Literal["GET", "HEAD"] = Field("GET", description="Метод проверки URL.")
    retry_times: int = Field(3, ge=0, description="Число повторных попыток при 429.")
    backoff_base: float = Field(1.0, ge=0, description="Базовая задержка экспоненциального backoff.")
    backoff_cap: float = Field(60.0, ge=0, description="Максимальная задержка backoff.")
    max_sitemap_depth: int = Field(10, ge=0, description="Максимальная вложенность sitemap index.")
    progress_step: int = Field(10, ge=1, le=100, description="Шаг отчёта о прогрессе, %.")
    check_soft404: bool = Field(False, description="Проверять страницы 200 на soft 404.")
    check_meta_robots: bool = Field(
        False, description="Проверять страницы 200 на noindex/nofollow (meta robots, X-Robots-Tag)."
    )
    host_policies: List[HostPolicy] = Field(default_factory=list)
    output_dir: str = Field("results", min_length=1, description="Каталог для отчётов.")

    def headers_for(self, url: str) -> Dict[str, str]:
        """Заголовки из host_policies, применимые к *url* (поздние перекрывают ранние)."""
        hostname = urlparse(url).hostname or ""
        headers: Dict[str, str] = {}
        for policy in self.host_policies:
            if policy.matches(hostname):
                headers.update(policy.headers)
        return headers

    def with_sitemaps(self, urls: List[str], site_id: str = "") -> AuditConfig:
        """Копия конфига с заменённым списком корневых sitemap."""
        sites = [SiteConfig(url=u, site_id=site_id) for u in urls]
        return self.model_copy(update={"sitemaps": sites})


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> AuditConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект AuditConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return AuditConfig(**data)


def load_config_or_default(path: Optional[Union[str, Path]]) -> AuditConfig:
    """Как load_config, но без явного пути и без configs/default.yaml возвращает значения по умолчанию."""
    if path is None and not _DEFAULT_CFG.exists():
        return AuditConfig()
    return load_config(path)


__all__ = [
    "AuditConfig",
    "HostPolicy",
    "SiteConfig",
    "ValidationError",
    "load_config",
    "load_config_or_default",
]
