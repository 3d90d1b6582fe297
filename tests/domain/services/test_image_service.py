"""ImageService のユニットテスト

アップロード画像のフォーマット・解像度の検査のテスト。
Requirements: 4.1
"""

import pytest

from app.domain.services.image_service import (
    ImageInfo,
    ImageService,
    get_image_service,
)


@pytest.fixture
def image_service() -> ImageService:
    return ImageService()


@pytest.mark.unit
class TestImageServiceInspect:
    """inspect メソッドのテスト"""

    def test_jpeg(self, image_service: ImageService, make_image_bytes):
        info = image_service.inspect(make_image_bytes(640, 800, "JPEG"))
        assert info == ImageInfo(format="jpeg", width=640, height=800)
        assert info.short_side == 640

    def test_png(self, image_service: ImageService, make_image_bytes):
        info = image_service.inspect(make_image_bytes(300, 200, "PNG"))
        assert info.format == "png"
        assert info.short_side == 200

    def test_unreadable_raises(self, image_service: ImageService):
        with pytest.raises(ValueError):
            image_service.inspect(b"not-an-image")

    def test_unsupported_format_raises(self, image_service: ImageService, make_image_bytes):
        with pytest.raises(ValueError):
            image_service.inspect(make_image_bytes(32, 32, "BMP"))

    def test_get_image_service(self):
        assert isinstance(get_image_service(), ImageService)
