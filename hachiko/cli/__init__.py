# The MIT License (MIT)
# Copyright © 2025 Entrius

from .main import cli, main

__all__ = ['cli', 'main']
