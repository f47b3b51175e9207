from archflow.storage.interface import FlowStorage
from archflow.storage.filesystem import FilesystemStorage
from archflow.storage.s3 import S3Storage
from archflow.config import settings

def get_storage() -> FlowStorage:
    """
    Factory function to create the appropriate storage implementation
    based on environment variables.
    
    Returns:
        A storage implementation (S3 or Filesystem)
    """
    # Determine which storage to use
    storage_type = settings.STORAGE_TYPE.lower()
    
    if storage_type == "s3":
        if not settings.S3_BUCKET:
            raise ValueError("S3_BUCKET must be set when using S3 storage")
        
        return S3Storage(
            bucket_name=settings.S3_BUCKET,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION
        )
    else:
        # Use filesystem storage
        return FilesystemStorage(base_dir=settings.FLOW_STORAGE_DIR)
