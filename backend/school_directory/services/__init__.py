# Services package init
"""
School Directory Backend — Services Layer
===========================================

Service Inventory:
    - BlobStore (abstract): interface for image storage backends
    - LocalBlobStore: images on the local filesystem
    - S3BlobStore: images in an S3-compatible bucket
    - FileService: upload validation plus store/discard over a BlobStore
    - SchoolService: the create/update/delete workflow across the Blob Store
      and the database
"""
