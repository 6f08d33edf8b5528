"""Check whether an image is already present on a container registry"""
from regpeek.oci import get_image_id, get_manifest_list_digests
from regpeek.oci.reference import normalize_reference

__all__ = ["get_image_id", "get_manifest_list_digests", "normalize_reference"]
