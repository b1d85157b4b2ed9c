"""Firebase Storage accessors for archived uploads."""


def upload_bytes(bucket, path, data, content_type):
    if bucket is None:
        return None
    blob = bucket.blob(path)
    blob.upload_from_string(data, content_type=content_type)
    return path


def delete_blob(bucket, path):
    if bucket is None or not path:
        return False
    bucket.blob(path).delete()
    return True
