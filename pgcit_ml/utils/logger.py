#!/usr/bin/env python3
"""
📝 Система логирования для PGCit ML

Централизованное логирование с красивым форматированием.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional

_loggers: Dict[str, 'Logger'] = {}


class ColoredFormatter(logging.Formatter):
    """Форматтер с цветным выводом"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }

    EMOJI = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️ ',
        'WARNING': '⚠️ ',
        'ERROR': '❌',
        'CRITICAL': '🚨',
    }

    # Сообщения, которые уже начинаются со своего эмодзи
    OWN_PREFIXES = ('✅', '❌', '⚠', '🔍', '🚀', '📊', '🔬', '🤖', '🔮', '💾', '⚡', '🎯', '📈', '🔄', '🏗', '🧪', '📁')

    def format(self, record):
        # Работаем с копией: исходная запись нужна другим обработчикам
        colored = logging.makeLogRecord(record.__dict__)
        levelname = record.levelname

        # Эмодзи добавляем только если сообщение не начинается со своего
        message = record.getMessage()
        prefix = self.EMOJI.get(levelname)
        if prefix and not message.startswith(self.OWN_PREFIXES):
            message = f"{prefix} {message}"
        colored.msg = message
        colored.args = None

        if levelname in self.COLORS:
            colored.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        return super().format(colored)


class Logger:
    """Централизованный логгер для PGCit ML"""

    def __init__(self, name: str = 'PGCitML', level: str = 'INFO',
                 log_file: Optional[str] = None, log_format: Optional[str] = None):
        """
        Инициализация логгера

        Args:
            name: Имя логгера
            level: Уровень логирования
            log_file: Путь к файлу логов (опционально)
            log_format: Формат логов (опционально)
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        # Очищаем существующие обработчики
        self.logger.handlers.clear()

        # Формат по умолчанию
        if log_format is None:
            log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(log_format))
        self.logger.addHandler(console_handler)

        # Файловый обработчик (если указан)
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(log_format))
            self.logger.addHandler(file_handler)

    def debug(self, message: str):
        """Логирование отладочной информации"""
        self.logger.debug(message)

    def info(self, message: str):
        """Логирование информационных сообщений"""
        self.logger.info(message)

    def warning(self, message: str):
        """Логирование предупреждений"""
        self.logger.warning(message)

    def error(self, message: str):
        """Логирование ошибок"""
        self.logger.error(message)

    def critical(self, message: str):
        """Логирование критических ошибок"""
        self.logger.critical(message)

    def log_extraction(self, n_samples: int, n_features: int, n_properties: int):
        """Логирование извлечения признаков"""
        self.info(f"🔬 Извлечены признаки")
        self.info(f"   🧪 Образцов: {n_samples}")
        self.info(f"   🔧 Признаков: {n_features}")
        self.info(f"   🎯 Свойств: {n_properties}")

    def log_training_start(self, property_name: str, config: dict):
        """Логирование начала обучения"""
        self.info(f"🚀 Начинаем обучение для свойства {property_name}")
        for key, value in config.items():
            self.debug(f"   🔧 {key}: {value}")

    def log_fold(self, model_type: str, fold: int, n_folds: int, metrics: dict):
        """Логирование результата одного фолда"""
        self.debug(
            f"🔄 {model_type} фолд {fold}/{n_folds}: "
            f"RMSE={metrics['rmse']:.4f}, MAE={metrics['mae']:.4f}, R²={metrics['r2']:.4f}"
        )

    def log_training_end(self, property_name: str, model_type: str, metrics: dict):
        """Логирование завершения обучения"""
        self.info(f"✅ {property_name} / {model_type}")
        for metric, value in metrics.items():
            if isinstance(value, float):
                self.info(f"   📊 {metric}: {value:.6f}")
            else:
                self.info(f"   📊 {metric}: {value}")

    def log_prediction(self, property_name: str, model_type: str, n_samples: int):
        """Логирование предсказания"""
        self.info(f"🔮 Предсказание {property_name} ({model_type}) для {n_samples} образцов")

    def log_model_saving(self, name: str, model_path: str):
        """Логирование сохранения моделей"""
        self.info(f"💾 Модели сохранены: {name}")
        self.info(f"   📁 Путь: {model_path}")

    def log_error(self, operation: str, error: Exception):
        """Логирование ошибок с контекстом"""
        self.error(f"❌ Ошибка в операции '{operation}': {str(error)}")
        self.debug(f"🔍 Детали ошибки: {type(error).__name__}")

    def log_performance(self, operation: str, duration: float):
        """Логирование производительности"""
        if duration < 1:
            self.info(f"⚡ {operation}: {duration*1000:.1f}ms")
        elif duration < 60:
            self.info(f"⚡ {operation}: {duration:.1f}s")
        else:
            minutes = int(duration // 60)
            seconds = duration % 60
            self.info(f"⚡ {operation}: {minutes}m {seconds:.1f}s")


def get_logger(name: str = 'PGCitML', level: str = 'INFO',
               log_file: Optional[str] = None, log_format: Optional[str] = None) -> Logger:
    """Получить логгер по имени (с повторным использованием)"""
    key = f"{name}:{level}:{log_file}"
    if key not in _loggers:
        _loggers[key] = Logger(name, level=level, log_file=log_file, log_format=log_format)
    return _loggers[key]
