from .mongo import MongoStorageDriver

__all__ = ("MongoStorageDriver",)
