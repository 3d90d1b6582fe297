from dataclasses import dataclass
from typing import Callable

_UINT32_MASK = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _UINT32_MASK


def mulberry32(seed: int) -> Callable[[], float]:
    """
    シード付き擬似乱数生成器（mulberry32）を作成する。

    同じシードからは常に同じ 0.0〜1.0 の乱数列が得られる。

    Args:
        seed (int): 32bit に切り詰められるシード値

    Returns:
        Callable[[], float]: 呼び出すたびに次の乱数を返す関数
    """
    state = seed & _UINT32_MASK

    def next_value() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _UINT32_MASK
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t = (t ^ ((t + _imul(t ^ (t >> 7), t | 61)) & _UINT32_MASK)) & _UINT32_MASK
        return ((t ^ (t >> 14)) & _UINT32_MASK) / 4294967296

    return next_value


@dataclass(frozen=True)
class JitterParams:
    """計測安定性サンプリング用の微小変形パラメータ"""
    rotation: float     # 度
    scale: float        # 倍率
    crop_x: float       # 画像幅に対する割合
    crop_y: float       # 画像高さに対する割合
    brightness: float   # 明るさの加算量


def generate_jitter_params(seed: int, count: int = 16) -> list[JitterParams]:
    """シードから決定的なジッター計画を生成する"""
    rng = mulberry32(seed)
    params: list[JitterParams] = []
    for _ in range(count):
        params.append(
            JitterParams(
                rotation=(rng() - 0.5) * 4,          # ±2°
                scale=0.97 + rng() * 0.06,           # 0.97〜1.03
                crop_x=(rng() - 0.5) * 0.04,         # ±2%
                crop_y=(rng() - 0.5) * 0.04,         # ±2%
                brightness=(rng() - 0.5) * 0.06,     # ±3%
            )
        )
    return params

