from .minio_storage import MinioStorage

__all__ = ["MinioStorage"]
