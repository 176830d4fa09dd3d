"""AI Fight Club Backend.

AI-driven learning platform that generates personalized challenges,
evaluates responses with an LLM, and tracks learner progress.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
