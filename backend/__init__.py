"""
API каталога Бали: карточки мест, сервисов и специалистов
"""
