from .routes import intel_bp

__all__ = ['intel_bp']
