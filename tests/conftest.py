import io
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import app.domain.models.scan_cache_entry  # noqa: F401  テーブル定義の登録
from app.infrastructure.database.database import Base, get_db
from main import app

# テスト用DBエンジンの作成（インメモリ SQLite）
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """
    テストセッション開始時にテーブルを作成
    テストセッション終了時にテーブルを削除
    """
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    各テストケースで使用するDBセッション
    テストケース開始時に全テーブルの内容をクリア
    """
    session = TestingSessionLocal()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()

    yield session

    session.close()


@pytest.fixture
def client(db: Session):
    """
    テスト用のFastAPIクライアント
    DBセッションを依存性注入
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_image_bytes(
    width: int = 640,
    height: int = 800,
    image_format: str = "JPEG",
    color: tuple[int, int, int] = (200, 180, 170),
) -> bytes:
    """テスト用の画像バイト列を生成する"""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def test_image_data() -> bytes:
    """テスト用の画像データ（640x800 JPEG）"""
    return _make_image_bytes()


def _face_measurement_payload(yaw: float = 2.0, **overrides: Any) -> dict[str, Any]:
    """計測プロバイダが返す顔の計測値"""
    payload: dict[str, Any] = {
        "domain": "face",
        "pose": {"yaw": yaw, "pitch": 1.0, "roll": 0.5, "confidence": 0.95},
        "quality": {"blur": 0.9, "brightness": 0.55, "filter_suspected": 0.05},
        "subject": {"face_visible": True, "full_body_visible": False, "occlusion_score": 0.0},
        "landmarks": {
            "face_width": 140.0,
            "face_height": 226.5,
            "hairline_to_eyebrow": 60.0,
            "eyebrow_to_nose": 60.0,
            "nose_to_chin": 60.0,
            "left_eye_width": 30.0,
            "right_eye_width": 30.0,
            "inter_eye_distance": 30.0,
            "nose_width": 18.5,
            "mouth_width": 27.8,
            "jaw_width": 86.5,
            "chin_width": 40.0,
            "left_face_width": 70.0,
            "right_face_width": 70.0,
            "left_cheek_height": 35.0,
            "right_cheek_height": 35.0,
            "left_brow_height": 20.0,
            "right_brow_height": 20.0,
        },
        "ratio_samples": {"interEyeSpacing": [1.0, 1.01, 0.99, 1.0]},
    }
    payload.update(overrides)
    return payload


def _body_measurement_payload(
    rotation: float = 5.0,
    face_visible: bool = True,
    **overrides: Any,
) -> dict[str, Any]:
    """計測プロバイダが返す体の計測値"""
    payload: dict[str, Any] = {
        "domain": "body",
        "pose": {"yaw": rotation, "pitch": 0.0, "roll": 0.0, "confidence": 0.9},
        "quality": {"blur": 0.85, "brightness": 0.5, "filter_suspected": 0.1},
        "subject": {
            "face_visible": face_visible,
            "full_body_visible": True,
            "occlusion_score": 0.05,
            "shoulder_rotation": rotation,
            "hip_rotation": rotation,
        },
        "measurements": {
            "shoulder_width": 45.0,
            "waist_width": 31.0,
            "hip_width": 35.0,
            "total_height": 170.0,
            "torso_height": 60.0,
            "leg_height": 62.0,
            "presentation": "male-presenting",
            "clothing_fit": "fitted",
            "leanness_estimate": 0.6,
            "body_type_probabilities": {"Natural": 0.7, "Classic": 0.3},
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_image_bytes():
    """任意サイズ・フォーマットのテスト画像を生成する関数"""
    return _make_image_bytes


@pytest.fixture
def face_measurement_payload():
    """顔の計測値ペイロードを生成する関数"""
    return _face_measurement_payload


@pytest.fixture
def body_measurement_payload():
    """体の計測値ペイロードを生成する関数"""
    return _body_measurement_payload
