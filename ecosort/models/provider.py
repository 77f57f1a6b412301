"""
Lazy, memoized model loading
A provider loads its backend on first use and shares it with every caller
"""

import logging
import threading
import time
from typing import Any, Callable, Optional

from ..exceptions import SourceUnavailableError


class ModelProvider:
    """
    Loads a model backend once and hands the same instance to all callers

    A failed load is remembered so that every request does not pay for
    another slow attempt; call reset() to retry.
    """

    def __init__(self, name: str, loader: Callable[[], Any]):
        """
        Args:
            name: Human readable source name used in logs and errors
            loader: Zero-argument callable returning the loaded backend
        """
        self.name = name
        self.loader = loader
        self._model = None
        self._load_error: Optional[str] = None
        self.lock = threading.Lock()
        self.setup_logging()

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def get(self) -> Any:
        """
        Return the shared backend, loading it on first call

        Raises:
            SourceUnavailableError: if the backend cannot be loaded
        """
        if self._model is not None:
            return self._model

        with self.lock:
            if self._model is not None:
                return self._model
            if self._load_error is not None:
                raise SourceUnavailableError(self.name, self._load_error)

            start_time = time.time()
            try:
                model = self.loader()
            except SourceUnavailableError as e:
                self._load_error = e.reason
                self.logger.error(f"Failed to load {self.name}: {e.reason}")
                raise
            except Exception as e:
                self._load_error = str(e) or type(e).__name__
                self.logger.error(f"Failed to load {self.name}: {e}")
                raise SourceUnavailableError(self.name, self._load_error) from e

            if model is None:
                self._load_error = "loader returned no model"
                raise SourceUnavailableError(self.name, self._load_error)

            self._model = model
            self.logger.info(f"Loaded {self.name} in {time.time() - start_time:.2f}s")
            return self._model

    def reset(self):
        """Forget the loaded model or the remembered failure"""
        with self.lock:
            self._model = None
            self._load_error = None


class StaticProvider(ModelProvider):
    """Provider wrapping an already constructed backend"""

    def __init__(self, name: str, model: Any):
        super().__init__(name, lambda: model)
