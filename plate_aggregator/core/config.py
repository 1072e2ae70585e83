import os
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv


# ==========================================================
# 1) Cargar .env raíz
# ==========================================================
load_dotenv(".env")
DEPLOY_ENV = os.getenv("DEPLOY_ENV", "prod").lower()

# ==========================================================
# 2) Cargar .env del entorno
# ==========================================================
ENV_PATH = f"deploy/{DEPLOY_ENV}/.env"
load_dotenv(ENV_PATH, override=True)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=ENV_PATH,
        extra="allow"
    )

    # =========================
    #  App
    # =========================
    deploy_env: str = Field("prod")
    app_name: str = Field("plate-aggregator")
    app_env: str = Field("prod")
    app_port: int = Field(8000)

    # =========================
    #  Detector (post-proceso)
    # =========================
    detector_input_size: int = Field(384)
    detector_row_stride: int = Field(7)
    detector_conf_threshold: float = Field(0.6)
    detector_min_box_area: float = Field(25.0)
    detector_class_names: List[str] = Field(default_factory=lambda: ["license_plate"])
    nms_iou_threshold: float = Field(0.7)

    # =========================
    #  OCR
    # =========================
    ocr_config_path: Optional[str] = Field(None)
    ocr_alphabet: str = Field("0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_")
    ocr_max_plate_slots: int = Field(10)
    ocr_pad_char: str = Field("_")

    # =========================
    #  Calidad
    # =========================
    display_conf_threshold: float = Field(0.7)
    quality_min_length: int = Field(4)
    quality_max_length: int = Field(10)
    quality_min_mean_confidence: float = Field(0.7)
    quality_min_char_confidence: float = Field(0.5)
    quality_accept_score: float = Field(0.7)

    # =========================
    #  Agregación
    # =========================
    similarity_threshold: float = Field(0.8)
    consecutive_timeout: float = Field(5.0)
    consecutive_required: int = Field(10)
    best_detections_limit: int = Field(10)

    # =========================
    #  Monitoring
    # =========================
    metrics_enabled: bool = Field(False)
    prometheus_port: int = Field(9100)

    # =========================
    #  Worker demo
    # =========================
    demo_frame_width: int = Field(1280)
    demo_frame_height: int = Field(720)
    demo_max_frames: int = Field(50)


settings = Settings()
