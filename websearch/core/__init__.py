"""핵심 설정/로깅/예외 모듈."""
