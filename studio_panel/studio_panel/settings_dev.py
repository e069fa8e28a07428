"""
Development settings - локальная разработка
"""
from .settings import *

DEBUG = True
ALLOWED_HOSTS = ['*']

# Подробные логи расписания и посещений
LOGGING['loggers']['schedule']['level'] = 'DEBUG'

print("🔧 Settings: Development (локальная разработка)")
