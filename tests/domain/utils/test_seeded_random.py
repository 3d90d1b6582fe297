"""seeded_random のユニットテスト

シード付き乱数・ジッター計画の決定性のテスト。
Requirements: 4.5
"""

import pytest

from app.domain.utils.seeded_random import (
    JitterParams,
    generate_jitter_params,
    mulberry32,
)


@pytest.mark.unit
class TestMulberry32:
    """mulberry32 のテスト"""

    def test_same_seed_same_sequence(self):
        a = mulberry32(12345)
        b = mulberry32(12345)
        assert [a() for _ in range(20)] == [b() for _ in range(20)]

    def test_different_seed_different_sequence(self):
        a = mulberry32(1)
        b = mulberry32(2)
        assert [a() for _ in range(5)] != [b() for _ in range(5)]

    def test_values_in_unit_interval(self):
        rng = mulberry32(0xDEADBEEF)
        for _ in range(1000):
            value = rng()
            assert 0.0 <= value < 1.0

    def test_seed_truncated_to_32bit(self):
        a = mulberry32(7)
        b = mulberry32(7 + 2**32)
        assert a() == b()


@pytest.mark.unit
class TestJitterParams:
    """generate_jitter_params のテスト"""

    def test_deterministic(self):
        assert generate_jitter_params(42) == generate_jitter_params(42)

    def test_default_count(self):
        assert len(generate_jitter_params(42)) == 16

    def test_ranges(self):
        for params in generate_jitter_params(99, count=64):
            assert isinstance(params, JitterParams)
            assert -2.0 <= params.rotation <= 2.0
            assert 0.97 <= params.scale <= 1.03
            assert -0.02 <= params.crop_x <= 0.02
            assert -0.02 <= params.crop_y <= 0.02
            assert -0.03 <= params.brightness <= 0.03

