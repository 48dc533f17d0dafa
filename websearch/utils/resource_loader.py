"""리소스 파일(YAML) 로더 유틸리티"""
import os
import yaml
from typing import Any, Dict
from functools import lru_cache

from websearch.core.logging import logger


def get_resource_path(relative_path: str) -> str:
    """패키지 resources/ 기준 리소스 절대 경로 반환"""
    # websearch/utils/resource_loader.py -> websearch/utils -> websearch
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_dir, "resources", relative_path)


@lru_cache(maxsize=32)
def load_yaml_resource(relative_path: str) -> Dict[str, Any]:
    """YAML 리소스 로드 및 캐싱"""
    path = get_resource_path(relative_path)
    if not os.path.exists(path):
        logger.warning(f"Resource not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except Exception as e:
        logger.error(f"Failed to load YAML resource {path}: {e}")
        return {}


def load_persona_definitions() -> list[Dict[str, Any]]:
    """브라우저 페르소나(지문) 정의 로드"""
    data = load_yaml_resource("personas.yaml")
    return data.get("personas", [])


def load_js_heavy_domains() -> list[str]:
    """HTTP 경로로는 본문이 거의 나오지 않는 JS 중심 사이트 목록 로드"""
    data = load_yaml_resource("escalation.yaml")
    return data.get("js_heavy_domains", [])
