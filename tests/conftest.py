"""
Pytest configuration and shared fixtures for Ink Mapper tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import numpy as np
import pytest

from INK_Libs.ColorLib.ink_models import Color, Ink


@pytest.fixture
def temp_project_dir(tmp_path):
    """
    Provide a temporary directory for project files.

    Args:
        tmp_path: Pytest's built-in temporary directory fixture

    Returns:
        Path object pointing to a temporary directory
    """
    return tmp_path


@pytest.fixture
def black_white_palette():
    """Palette of pure black (index 0) and pure white (index 1)."""
    return [Ink(Color(0, 0, 0), 64.0), Ink(Color(255, 255, 255), 64.0)]


@pytest.fixture
def rgb_palette():
    """Palette of pure red, green and blue."""
    return [
        Ink(Color(255, 0, 0)),
        Ink(Color(0, 255, 0)),
        Ink(Color(0, 0, 255)),
    ]


@pytest.fixture
def gradient_image():
    """16x8 RGBA buffer with a horizontal red ramp and a vertical blue ramp."""
    image = np.zeros((8, 16, 4), dtype=np.uint8)
    image[..., 0] = np.linspace(0, 255, 16, dtype=np.uint8)[None, :]
    image[..., 2] = np.linspace(0, 255, 8, dtype=np.uint8)[:, None]
    image[..., 1] = 64
    image[..., 3] = 255
    return image


@pytest.fixture
def solid_image():
    """Factory building an (H, W, 4) uint8 buffer filled with one RGBA color."""
    def build(width, height, rgba):
        image = np.zeros((height, width, 4), dtype=np.uint8)
        image[...] = rgba
        return image
    return build
