from prometheus_client import Gauge, Counter, Histogram, start_http_server

# Frames ofrecidos y procesados por sesión
frames_total = Counter(
    "plate_frames_total",
    "Frames recibidos por el pipeline",
    ["session_id", "status"]
)

# Detecciones que sobreviven al NMS
detections_total = Counter(
    "plate_detections_total",
    "Detecciones tras el NMS",
    ["session_id"]
)

# Lecturas rechazadas por la puerta de calidad
quality_rejections_total = Counter(
    "plate_quality_rejections_total",
    "Lecturas rechazadas por calidad",
    ["session_id"]
)

# Lecturas registradas en el agregador
plates_submitted_total = Counter(
    "plates_submitted_total",
    "Lecturas aceptadas y registradas",
    ["session_id"]
)

# Errores de decodificación OCR (tamaño o valores no finitos)
decode_errors_total = Counter(
    "plate_decode_errors_total",
    "Errores al decodificar la salida del OCR",
    ["session_id"]
)

# Señales de parada disparadas
stop_signals_total = Counter(
    "plate_stop_signals_total",
    "Paradas automáticas de captura",
    ["session_id"]
)

# Placas únicas (clusters) en la sesión
unique_plates = Gauge(
    "plate_unique_clusters",
    "Clusters de placas en la sesión actual",
    ["session_id"]
)

# Latencia total por frame
pipeline_latency = Histogram(
    "plate_pipeline_latency_seconds",
    "Tiempo total de procesamiento de frame",
    ["session_id"]
)

def start_metrics_server(port: int = 9100):
    """Arranca servidor de métricas Prometheus."""
    start_http_server(port)
