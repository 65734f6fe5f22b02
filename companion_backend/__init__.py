"""
Companion Cube backend
Productivity companion that reads ActivityWatch data, scores focus locally,
asks a local Ollama model for an assessment and publishes periodic summaries
"""

__version__ = "0.1.0"
