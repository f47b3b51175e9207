import json
import os
import shutil
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from archflow.domain.errors import PersistenceError
from archflow.storage.interface import FlowStorage

class FilesystemStorage(FlowStorage):
    """
    Implements flow storage using the local filesystem.

    Layout::

        <base_dir>/<flow_id>/info.json
        <base_dir>/<flow_id>/data.json
    """
    
    def __init__(self, base_dir: str = None):
        """
        Initialize filesystem storage.
        
        Args:
            base_dir: Base directory for storing flows. 
                      If None, uses 'flows' in the current working directory.
        """
        if base_dir is None:
            base_dir = os.path.join(os.getcwd(), "flows")
        
        self.base_dir = base_dir
        os.makedirs(self.base_dir, exist_ok=True)
    
    def _flow_dir(self, flow_id: str) -> str:
        return os.path.join(self.base_dir, flow_id)
    
    def _read_json(self, path: str) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    
    def _write_json(self, path: str, payload: Any) -> None:
        # Write-then-rename so readers never see a half written document
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, path)
    
    def create_flow(self, name: str, description: str = "") -> Dict[str, Any]:
        flow_id = str(uuid.uuid4())
        info = {
            "id": flow_id,
            "name": name,
            "description": description,
            "created_at": datetime.now().isoformat(),
        }
        os.makedirs(self._flow_dir(flow_id), exist_ok=True)
        self._write_json(os.path.join(self._flow_dir(flow_id), "info.json"), info)
        self._write_json(os.path.join(self._flow_dir(flow_id), "data.json"), {"nodes": [], "edges": []})
        return info
    
    def get_flow(self, flow_id: str) -> Optional[Dict[str, Any]]:
        info_path = os.path.join(self._flow_dir(flow_id), "info.json")
        if not os.path.exists(info_path):
            return None
        return self._read_json(info_path)
    
    def list_flows(self) -> List[Dict[str, Any]]:
        flows = []
        for entry in sorted(os.listdir(self.base_dir)):
            info = self.get_flow(entry)
            if info:
                flows.append(info)
        return flows
    
    def delete_flow(self, flow_id: str) -> bool:
        flow_dir = self._flow_dir(flow_id)
        if not os.path.isdir(flow_dir):
            return False
        shutil.rmtree(flow_dir)
        return True
    
    def save_flow_data(self, flow_id: str, data: Dict[str, Any]) -> None:
        flow_dir = self._flow_dir(flow_id)
        if not os.path.isdir(flow_dir):
            raise PersistenceError(f"Flow not found in storage: {flow_id}")
        try:
            self._write_json(os.path.join(flow_dir, "data.json"), data)
        except OSError as e:
            raise PersistenceError(f"Failed to write flow {flow_id}: {e}") from e
    
    def load_flow_data(self, flow_id: str) -> Dict[str, Any]:
        data_path = os.path.join(self._flow_dir(flow_id), "data.json")
        if not os.path.exists(data_path):
            return {"nodes": [], "edges": []}
        try:
            return self._read_json(data_path)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored data for flow {flow_id} is corrupt: {e}") from e
