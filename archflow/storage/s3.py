import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from archflow.domain.errors import PersistenceError
from archflow.storage.interface import FlowStorage

class S3Storage(FlowStorage):
    """
    Implements flow storage using AWS S3.

    Keys::

        flows/<flow_id>/info.json
        flows/<flow_id>/data.json
    """
    
    def __init__(self, bucket_name: str, aws_access_key_id: str = None, 
                 aws_secret_access_key: str = None, region_name: str = None,
                 s3_client=None):
        """
        Initialize S3 storage.
        
        Args:
            bucket_name: S3 bucket name
            aws_access_key_id: AWS access key ID (if None, uses environment variables)
            aws_secret_access_key: AWS secret access key (if None, uses environment variables)
            region_name: AWS region name (if None, uses environment variables)
            s3_client: Preconfigured client, mainly for tests
        """
        self.bucket_name = bucket_name
        
        # If credentials are not provided, boto3 will look for them in environment variables
        self.s3_client = s3_client or boto3.client(
            's3',
            aws_access_key_id=aws_access_key_id or None,
            aws_secret_access_key=aws_secret_access_key or None,
            region_name=region_name
        )
        
        # Ensure bucket exists
        self._ensure_bucket_exists()
    
    def _ensure_bucket_exists(self):
        """Ensure the S3 bucket exists, create it if it doesn't."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code == '404':
                # Bucket doesn't exist, create it
                self.s3_client.create_bucket(Bucket=self.bucket_name)
            else:
                # Another error occurred
                raise
    
    def _key(self, flow_id: str, name: str) -> str:
        return f"flows/{flow_id}/{name}"
    
    def _put_json(self, key: str, payload: Any) -> None:
        self.s3_client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=json.dumps(payload).encode("utf-8"),
            ContentType="application/json",
        )
    
    def _get_json(self, key: str) -> Optional[Any]:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                return None
            raise
        return json.loads(response['Body'].read())
    
    def create_flow(self, name: str, description: str = "") -> Dict[str, Any]:
        flow_id = str(uuid.uuid4())
        info = {
            "id": flow_id,
            "name": name,
            "description": description,
            "created_at": datetime.now().isoformat(),
        }
        self._put_json(self._key(flow_id, "info.json"), info)
        self._put_json(self._key(flow_id, "data.json"), {"nodes": [], "edges": []})
        return info
    
    def get_flow(self, flow_id: str) -> Optional[Dict[str, Any]]:
        return self._get_json(self._key(flow_id, "info.json"))
    
    def list_flows(self) -> List[Dict[str, Any]]:
        flows = []
        paginator = self.s3_client.get_paginator('list_objects_v2')
        for page in paginator.paginate(Bucket=self.bucket_name, Prefix="flows/"):
            for obj in page.get('Contents', []):
                if obj['Key'].endswith("/info.json"):
                    info = self._get_json(obj['Key'])
                    if info:
                        flows.append(info)
        return flows
    
    def delete_flow(self, flow_id: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=self._key(flow_id, "data.json"))
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=self._key(flow_id, "info.json"))
            return True
        except ClientError:
            return False
    
    def save_flow_data(self, flow_id: str, data: Dict[str, Any]) -> None:
        try:
            self._put_json(self._key(flow_id, "data.json"), data)
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError(f"Failed to write flow {flow_id} to S3: {e}") from e
    
    def load_flow_data(self, flow_id: str) -> Dict[str, Any]:
        try:
            data = self._get_json(self._key(flow_id, "data.json"))
        except (ClientError, BotoCoreError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read flow {flow_id} from S3: {e}") from e
        return data or {"nodes": [], "edges": []}
