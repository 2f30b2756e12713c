# backend/utils/__init__.py
"""
Вычисляемые поля карточек: расписание, особенности, загруженность, расстояния
"""
