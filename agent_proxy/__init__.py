"""OpenAI and Ollama compatible proxy in front of an agent gateway"""

__version__ = "1.0.0"
