"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

Repository package — Query layer for users, chats, messages and
notifications. Repositories flush; services decide when to commit.
"""
