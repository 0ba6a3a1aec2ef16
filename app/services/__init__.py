"""서비스 패키지 — 채팅, 알림, 접속 상태, 인증 규칙.

Service package — Chat send/fan-out, notifications, presence and the shared
token rule. HTTP routes and Socket.IO handlers both call into this layer.
"""
