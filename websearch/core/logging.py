"""로깅 설정

모든 모듈은 `from websearch.core.logging import logger`로 같은 로거를 씁니다.
메시지 앞에는 컴포넌트 태그를 붙입니다. ([SearchEngine], [BrowserPool], [GC] ...)
"""
import logging
import os
import re
import sys
from websearch.core.config import settings


LOGGER_NAME = "websearch"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Production 환경에서는 DEBUG 로그 비활성화
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development") == "production"

_FORMATS = {
    "production": "%(asctime)s - %(levelname)s - %(message)s",
    "development": "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
}

# URL 쿼리스트링에 실린 키/토큰 값만 가린다 (검색어 자체는 그대로 남김)
_SECRET_PARAM = re.compile(r"(?i)\b(api_?key|token|secret|key|password)=([^&\s]+)")


def _resolve_level(level_name: str) -> int:
    level_name = level_name.upper()
    if IS_PRODUCTION and level_name == "DEBUG":
        level_name = "INFO"
    return getattr(logging, level_name, logging.INFO)


def setup_logging() -> logging.Logger:
    """`websearch` 로거 초기화 (여러 번 호출해도 핸들러는 하나)"""
    logger = logging.getLogger(LOGGER_NAME)
    level = _resolve_level(settings.log_level)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(
            logging.Formatter(
                fmt=_FORMATS["production" if IS_PRODUCTION else "development"],
                datefmt=DATE_FORMAT,
            )
        )
        logger.addHandler(handler)

    return logger


logger = setup_logging()


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """로그에 남길 문자열 정리

    Args:
        value: 검색어, URL, 응답 본문 일부 등
        max_length: 최대 길이 (초과분은 "..."로 절단)

    Returns:
        비밀 파라미터 값이 가려지고 절단된 문자열
    """
    if not value:
        return "[empty]"

    result = _SECRET_PARAM.sub(lambda m: f"{m.group(1)}=***", value)
    result = result.replace("\n", " ")

    if len(result) > max_length:
        result = result[:max_length] + "..."

    return result
