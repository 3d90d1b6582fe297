from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status

from app.domain.models.measurement import MEASUREMENT_ADAPTER
from app.domain.services.image_service import ImageService, get_image_service
from app.domain.services.measurement_service import (
    MeasurementError,
    get_measurement_service,
)
from app.domain.services.scan_cache_service import (
    InMemoryScanCacheStore,
    KeyedLocks,
    ScanCacheService,
)
from app.interfaces.api.scan import get_scan_cache_service
from main import app

API = "/sugata/api"


@pytest.fixture
def measurement_service():
    """計測サービスのモック（依存性をオーバーライド）"""
    service = MagicMock()
    service.measure = AsyncMock()
    app.dependency_overrides[get_measurement_service] = lambda: service
    return service


@pytest.fixture
def scan_cache_service():
    """テストごとに独立したキャッシュ（依存性をオーバーライド）"""
    service = ScanCacheService(
        store=InMemoryScanCacheStore(),
        schema_version="2.0.0",
        keyed_locks=KeyedLocks(),
    )
    app.dependency_overrides[get_scan_cache_service] = lambda: service
    return service


@pytest.fixture
def scan_client(client, measurement_service, scan_cache_service):
    app.dependency_overrides[get_image_service] = ImageService
    return client


@pytest.mark.api
class TestPingAPI:
    def test_ping(self, client):
        """正常系: ヘルスチェック"""
        response = client.get(f"{API}/ping")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "ok"
        assert "schema_version" in response.json()
        assert response.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.api
class TestValidatePhotoAPI:
    def test_validate_photo_success(
        self, scan_client, measurement_service, test_image_data, face_measurement_payload
    ):
        """正常系: 正面の顔写真を受け付ける"""
        measurement_service.measure.return_value = MEASUREMENT_ADAPTER.validate_python(
            face_measurement_payload())

        response = scan_client.post(
            f"{API}/scan/validate_photo",
            files={'image': ('face.jpg', test_image_data, 'image/jpeg')},
            data={'expected_view': 'face_front'},
        )

        assert response.status_code == status.HTTP_200_OK
        response_data = response.json()
        assert response_data['is_valid'] is True
        assert response_data['detected_view'] == 'face_front'
        assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"

    def test_validate_photo_rejected(
        self, scan_client, measurement_service, test_image_data, face_measurement_payload
    ):
        """異常系: 3/4 アングルは 422 で却下理由を返す"""
        measurement_service.measure.return_value = MEASUREMENT_ADAPTER.validate_python(
            face_measurement_payload(yaw=40.0))

        response = scan_client.post(
            f"{API}/scan/validate_photo",
            files={'image': ('face.jpg', test_image_data, 'image/jpeg')},
            data={'expected_view': 'face_front'},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        response_data = response.json()
        assert response_data['code'] == 201
        assert response_data['details']['error_type'] == 'INVALID_VIEW'
        assert response_data['details']['expected_view'] == 'face_front'

    def test_validate_photo_unknown_view(self, scan_client, test_image_data):
        """異常系: 未知のビュー名"""
        response = scan_client.post(
            f"{API}/scan/validate_photo",
            files={'image': ('face.jpg', test_image_data, 'image/jpeg')},
            data={'expected_view': '<script>'},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        response_data = response.json()
        assert response_data['code'] == 105
        assert response_data['details'] == {'param': 'expected_view'}
        assert '<script>' not in response.text

    def test_validate_photo_invalid_image(self, scan_client):
        """異常系: 画像として読み込めないファイル"""
        response = scan_client.post(
            f"{API}/scan/validate_photo",
            files={'image': ('face.jpg', b'not-an-image', 'image/jpeg')},
            data={'expected_view': 'face_front'},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['details'] == {'param': 'image'}

    def test_validate_photo_upstream_error(self, scan_client, measurement_service, test_image_data):
        """異常系: 計測プロバイダの失敗は 502 で再試行可能として返す"""
        measurement_service.measure.side_effect = MeasurementError("Bedrock API エラー")

        response = scan_client.post(
            f"{API}/scan/validate_photo",
            files={'image': ('face.jpg', test_image_data, 'image/jpeg')},
            data={'expected_view': 'face_front'},
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        response_data = response.json()
        assert response_data['code'] == 202
        assert response_data['details']['retryable'] is True


@pytest.mark.api
class TestScanAPI:
    def test_face_scan_success_and_cached(
        self, scan_client, measurement_service, test_image_data, face_measurement_payload
    ):
        """正常系: 顔スキャン。2回目はキャッシュから同じスコアを返す"""
        measurement_service.measure.return_value = MEASUREMENT_ADAPTER.validate_python(
            face_measurement_payload())
        files = {'front_image': ('front.jpg', test_image_data, 'image/jpeg')}

        first = scan_client.post(f"{API}/scan/face", files=files)
        second = scan_client.post(f"{API}/scan/face", files=files)

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_200_OK
        first_data = first.json()
        second_data = second.json()
        assert first_data['meta']['cached'] is False
        assert second_data['meta']['cached'] is True
        assert first_data['overall'] == second_data['overall']
        assert len(first_data['pillars']) == 5
        assert measurement_service.measure.call_count == 1

    def test_body_scan_success(
        self, scan_client, measurement_service, test_image_data, body_measurement_payload
    ):
        """正常系: 全身スキャン（正面のみ）"""
        measurement_service.measure.return_value = MEASUREMENT_ADAPTER.validate_python(
            body_measurement_payload())

        response = scan_client.post(
            f"{API}/scan/body",
            files={'front_image': ('front.jpg', test_image_data, 'image/jpeg')},
        )

        assert response.status_code == status.HTTP_200_OK
        response_data = response.json()
        assert response_data['posture'] is None
        assert response_data['body_type']['primary_type'] == 'Natural'
        assert 0.0 <= response_data['overall']['current_score10'] <= 10.0

    def test_body_scan_rejected_back_photo(
        self, scan_client, measurement_service, test_image_data, body_measurement_payload
    ):
        """異常系: 正面として送られた背面写真"""
        measurement_service.measure.return_value = MEASUREMENT_ADAPTER.validate_python(
            body_measurement_payload(rotation=170.0, face_visible=False))

        response = scan_client.post(
            f"{API}/scan/body",
            files={'front_image': ('front.jpg', test_image_data, 'image/jpeg')},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()['details']['detected_view'] == 'rejected'


@pytest.mark.api
class TestScanCacheAPI:
    def test_cache_key(self, scan_client, test_image_data):
        """正常系: オプションの順序によらず同じキー・シード"""
        files = {'image': ('face.jpg', test_image_data, 'image/jpeg')}

        a = scan_client.post(
            f"{API}/scan/cache_key", files=files, data={'options': '{"a": 1, "b": 2}'})
        b = scan_client.post(
            f"{API}/scan/cache_key", files=files, data={'options': '{"b": 2, "a": 1}'})

        assert a.status_code == status.HTTP_200_OK
        assert a.json() == b.json()
        assert a.json()['cached'] is False

    def test_cache_key_invalid_options(self, scan_client, test_image_data):
        """異常系: オプションの JSON が不正"""
        response = scan_client.post(
            f"{API}/scan/cache_key",
            files={'image': ('face.jpg', test_image_data, 'image/jpeg')},
            data={'options': '{broken'},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['code'] == 105

    def test_stats_and_clear(self, scan_client, scan_cache_service):
        """正常系: 統計と全件削除"""
        scan_cache_service.put(scan_cache_service.make_key(b"photo", None), {"x": 1})

        stats = scan_client.get(f"{API}/scan/cache/stats")
        assert stats.status_code == status.HTTP_200_OK
        assert stats.json() == {"entries": 1, "schema_version": "2.0.0", "in_flight": 0}

        cleared = scan_client.delete(f"{API}/scan/cache")
        assert cleared.status_code == status.HTTP_200_OK
        assert cleared.json() == {"removed": 1}
        assert scan_cache_service.stats()["entries"] == 0
