# backend/services/__init__.py
"""
Сервисы каталога: нормализация, сборка списков, комментарии, хранилища
"""
