# plate_aggregator/domain/errors.py


class PlatePipelineError(Exception):
    """Raíz de los errores propios del pipeline de placas."""


class OutputSizeMismatchError(PlatePipelineError, ValueError):
    """
    El buffer crudo de un modelo no tiene el tamaño esperado.
    Es un error de contrato (defecto), no operativo.
    """

    def __init__(self, expected: int, received: int, what: str = "salida"):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Tamaño de {what} incorrecto. Esperado: {expected}, Recibido: {received}"
        )


class NonFiniteValueError(PlatePipelineError, ValueError):
    """Se encontró NaN o infinito donde se esperaba una confianza o coordenada."""


class InferenceError(PlatePipelineError, RuntimeError):
    """
    Fallo del motor de inferencia externo. Se distingue de "sin resultados":
    un frame fallido nunca llega al agregador.
    """


class OcrConfigError(PlatePipelineError, ValueError):
    """Configuración del modelo OCR inválida."""
