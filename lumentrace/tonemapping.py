"""
Tone mapping operators for HDR to LDR conversion.

Implements per-channel curves:
- Reinhard
- Exposure with gamma correction
- ACES Filmic (Narkowicz fit)
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum

import numpy as np


class ToneMappingOperator(Enum):
    """Available tone mapping operators."""
    REINHARD = "reinhard"
    EXPOSURE = "exposure"
    ACES_FILMIC = "aces_filmic"


class ToneMapper(ABC):
    """Abstract base class for tone mapping operators."""

    @abstractmethod
    def apply(self, hdr_image: np.ndarray) -> np.ndarray:
        """Apply tone mapping to an HDR image.

        Args:
            hdr_image: HDR image (H, W, 3), linear float values

        Returns:
            LDR image (H, W, 3), values in [0, 1]
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the operator."""
        pass

    def get_parameters(self) -> dict:
        """Get operator parameters for logging and metadata."""
        return {}


class ReinhardToneMapper(ToneMapper):
    """Reinhard global operator applied per channel.

    The formula is: L_out = L_in / (1 + L_in), after scaling by exposure.
    Bright values are compressed smoothly and never reach 1.0.
    """

    def __init__(self, exposure: float = 1.0):
        """Initialize Reinhard tone mapper.

        Args:
            exposure: Linear multiplier applied before the curve
        """
        self.exposure = exposure

    @property
    def name(self) -> str:
        return "Reinhard"

    def get_parameters(self) -> dict:
        return {"exposure": self.exposure}

    def apply(self, hdr_image: np.ndarray) -> np.ndarray:
        adjusted = np.maximum(hdr_image * self.exposure, 0.0)
        return adjusted / (1.0 + adjusted)


class ExposureToneMapper(ToneMapper):
    """Linear exposure, clamp, then gamma correction."""

    def __init__(self, exposure: float = 1.0, gamma: float = 2.2):
        """Initialize exposure tone mapper.

        Args:
            exposure: Linear multiplier (> 1 brightens, < 1 darkens)
            gamma: Display gamma (2.2 for typical monitors)
        """
        self.exposure = exposure
        self.gamma = gamma

    @property
    def name(self) -> str:
        return "Exposure"

    def get_parameters(self) -> dict:
        return {"exposure": self.exposure, "gamma": self.gamma}

    def apply(self, hdr_image: np.ndarray) -> np.ndarray:
        adjusted = np.clip(hdr_image * self.exposure, 0.0, 1.0)
        return np.power(adjusted, 1.0 / self.gamma)


class ACESFilmicToneMapper(ToneMapper):
    """ACES Filmic tone mapping (approximation).

    Fitted curve of the ACES reference rendering transform:
    (x * (a*x + b)) / (x * (c*x + d) + e)

    Reference: Narkowicz, "ACES Filmic Tone Mapping Curve" (2016)
    """

    # Fitted constants
    A = 2.51
    B = 0.03
    C = 2.43
    D = 0.59
    E = 0.14

    def __init__(self, exposure: float = 1.0):
        """Initialize ACES filmic tone mapper.

        Args:
            exposure: Linear multiplier applied before the curve
        """
        self.exposure = exposure

    @property
    def name(self) -> str:
        return "ACES Filmic"

    def get_parameters(self) -> dict:
        return {"exposure": self.exposure}

    def apply(self, hdr_image: np.ndarray) -> np.ndarray:
        x = hdr_image * self.exposure
        result = (x * (self.A * x + self.B)) / (x * (self.C * x + self.D) + self.E)
        return np.clip(result, 0.0, 1.0)


def create_tone_mapper(operator: ToneMappingOperator, **kwargs) -> ToneMapper:
    """Create a tone mapper by operator type.

    Args:
        operator: Type of tone mapping operator (enum member or its value)
        **kwargs: Additional arguments for the specific operator

    Returns:
        ToneMapper instance
    """
    if isinstance(operator, str):
        try:
            operator = ToneMappingOperator(operator)
        except ValueError:
            raise ValueError(f"Unknown tone mapping operator: {operator}") from None

    if operator == ToneMappingOperator.REINHARD:
        return ReinhardToneMapper(**kwargs)
    elif operator == ToneMappingOperator.EXPOSURE:
        return ExposureToneMapper(**kwargs)
    elif operator == ToneMappingOperator.ACES_FILMIC:
        return ACESFilmicToneMapper(**kwargs)
    else:
        raise ValueError(f"Unknown tone mapping operator: {operator}")
