from __future__ import annotations

import io
from typing import Iterator

from oci.auth.signers import InstancePrincipalsSecurityTokenSigner
from oci.config import from_file
from oci.object_storage import ObjectStorageClient
from oci.object_storage.models import RenameObjectDetails
from oci.signer import Signer


class OCIObjectStorageS3Shim:
    """
    Lightweight adapter that exposes a small, S3-like interface on top of
    Oracle Cloud Infrastructure (OCI) Object Storage.

    Authentication modes:
      - "instance_principal":
          Uses the OCI Instance Principal of the current Compute instance.
      - "api_key":
          Uses a user-scoped OCI API key (private PEM key + config file).

    Implemented operations:
      - put_object: upload an object
      - list_objects: one page of objects under a prefix
      - iter_objects: every object under a prefix, following pagination
      - get_object: download an object
      - delete_object: remove an object
      - rename_object: rename an object within its bucket

    Method signatures and return shapes are boto3-like. The adapter talks
    to the native OCI Object Storage API, not the S3-compatibility endpoint.
    """

    def __init__(
        self,
        *,
        region: str | None = None,
        auth_mode: str = "instance_principal",
        oci_config_file: str | None = None,
        oci_profile: str = "DEFAULT",
    ) -> None:
        """
        Create a new Object Storage client wrapper.

        Parameters:
          region:
            OCI region identifier (e.g. "eu-frankfurt-1").
            If provided, it overrides the region in the OCI config file.

          auth_mode:
            "instance_principal" or "api_key".

          oci_config_file:
            Path to an OCI CLI-style config file (required for api_key auth).

          oci_profile:
            Profile name inside the OCI config file.
        """
        if auth_mode == "instance_principal":
            signer = InstancePrincipalsSecurityTokenSigner()
            config = {}

        elif auth_mode == "api_key":
            if oci_config_file is None:
                raise ValueError("oci_config_file is required for api_key auth")

            config = from_file(
                file_location=oci_config_file,
                profile_name=oci_profile,
            )
            signer = Signer(
                tenancy=config["tenancy"],
                user=config["user"],
                fingerprint=config["fingerprint"],
                private_key_file_location=config["key_file"],
                pass_phrase=config.get("pass_phrase"),
            )

        else:
            raise ValueError(f"Unknown auth_mode: {auth_mode}")

        client_kwargs = {}
        if region:
            client_kwargs["region"] = region

        self.client = ObjectStorageClient(
            config=config,
            signer=signer,
            **client_kwargs,
        )

        self.namespace = self.client.get_namespace().data

    def put_object(self, bucket: str, key: str, body, content_type: str = "application/octet-stream"):
        """
        Upload an object. Returns a minimal boto3-like dict with the ETag.
        """
        resp = self.client.put_object(
            namespace_name=self.namespace,
            bucket_name=bucket,
            object_name=key,
            put_object_body=body,
            content_type=content_type,
        )
        return {"ETag": resp.headers.get("etag")}

    def list_objects(
        self,
        bucket: str,
        prefix: str | None = None,
        continuation_token: str | None = None,
        max_keys: int = 1000,
    ) -> dict[str, object]:
        """
        List one page of objects in a bucket, optionally filtered by prefix.

        Returns:
          A dict with keys:
            - Contents: list of {"Key", "Size"}
            - IsTruncated: whether more results are available
            - NextContinuationToken: token for the next page (or None)
        """
        kwargs = {
            "namespace_name": self.namespace,
            "bucket_name": bucket,
            "limit": max_keys,
            # size is only returned when requested explicitly
            "fields": "name,size",
        }
        if prefix:
            kwargs["prefix"] = prefix
        if continuation_token:
            kwargs["start"] = continuation_token

        resp = self.client.list_objects(**kwargs)
        objects = []
        for o in resp.data.objects or []:
            objects.append({"Key": o.name, "Size": getattr(o, "size", None) or 0})

        next_token = getattr(resp.data, "next_start_with", None)
        return {
            "Contents": objects,
            "IsTruncated": bool(next_token),
            "NextContinuationToken": next_token,
        }

    def iter_objects(self, bucket: str, prefix: str | None = None) -> Iterator[dict[str, object]]:
        """
        Yield every {"Key", "Size"} under the prefix across all pages.
        """
        token: str | None = None
        while True:
            page = self.list_objects(bucket, prefix=prefix, continuation_token=token)
            yield from page["Contents"]

            if not page["IsTruncated"]:
                return
            token = page["NextContinuationToken"]

    def get_object(self, bucket: str, key: str) -> dict[str, object]:
        """
        Download an object from OCI Object Storage.

        Returns a boto3-like response where 'Body' is an io.BytesIO. The OCI
        SDK exposes response bodies in different shapes depending on transport
        and SDK version; they are normalized into a single bytes buffer.
        """
        resp = self.client.get_object(
            namespace_name=self.namespace,
            bucket_name=bucket,
            object_name=key,
        )

        d = resp.data

        # Case 1: direct .read()
        if hasattr(d, "read") and callable(getattr(d, "read")):
            data_bytes = d.read()

        # Case 2: .content (bytes already)
        elif hasattr(d, "content"):
            data_bytes = d.content

        # Case 3: raw.read()
        elif hasattr(d, "raw") and hasattr(d.raw, "read") and callable(getattr(d.raw, "read")):
            data_bytes = d.raw.read()

        else:
            raise TypeError("Unsupported OCI get_object response type; no readable data attribute found.")

        return {
            "Body": io.BytesIO(data_bytes or b""),
            "ContentLength": len(data_bytes or b""),
            "ContentType": resp.headers.get("content-type", ""),
        }

    def delete_object(self, bucket: str, key: str) -> None:
        self.client.delete_object(
            namespace_name=self.namespace,
            bucket_name=bucket,
            object_name=key,
        )

    def rename_object(self, bucket: str, source_key: str, destination_key: str) -> None:
        """
        Rename an object. OCI renames are atomic per object.
        """
        self.client.rename_object(
            namespace_name=self.namespace,
            bucket_name=bucket,
            rename_object_details=RenameObjectDetails(
                source_name=source_key,
                new_name=destination_key,
            ),
        )
