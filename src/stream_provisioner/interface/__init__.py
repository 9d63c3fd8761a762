"""
Interface Layer

설정 로딩과 커맨드라인 진입점에서 사용하는 외부 입력 처리를 담당합니다.
"""
