# -*- coding: utf-8 -*-
"""Provider/model configuration and OpenAI-compatible request adaptation."""

__version__ = "0.3.0"
