# plate_aggregator/domain/Services/capture_gate.py
import logging
import threading
from typing import Callable, Optional

from plate_aggregator.domain.Models.plate_record import StopSignal

logger = logging.getLogger(__name__)


class CaptureGate:
    """
    Consume los StopSignal del agregador y llama al callback de parada
    exactamente una vez por sesión de captura, aunque submit se vuelva a
    invocar antes de que el llamador reaccione.
    """

    def __init__(self, on_stop: Optional[Callable[[], None]] = None):
        self._on_stop = on_stop
        self._fired = False
        self._lock = threading.Lock()

    @property
    def fired(self) -> bool:
        return self._fired

    def arm(self, on_stop: Optional[Callable[[], None]] = None) -> None:
        """Prepara el gate para una nueva sesión."""
        with self._lock:
            if on_stop is not None:
                self._on_stop = on_stop
            self._fired = False

    def handle(self, result) -> bool:
        """
        Recibe el resultado de submit. Devuelve True sólo la vez que
        efectivamente dispara la parada.
        """
        if not isinstance(result, StopSignal):
            return False

        with self._lock:
            if self._fired:
                return False
            self._fired = True
            callback = self._on_stop

        logger.info("Señal de parada para '%s' tras %d lecturas consecutivas", result.text, result.count)
        if callback is not None:
            callback()
        return True
