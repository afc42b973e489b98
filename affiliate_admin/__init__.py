"""Affiliate admin settlement backend.

파트너(총판) 계층 정산 API 서버입니다.
"""

__version__ = "1.0.0"
