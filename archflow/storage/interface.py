from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

class FlowStorage(ABC):
    """
    Abstract interface for flow storage. Supports both S3 and local filesystem.

    Flow data is stored as the plain ``{"nodes": [...], "edges": [...]}``
    document; edges carry only their durable fields.
    """
    
    @abstractmethod
    def create_flow(self, name: str, description: str = "") -> Dict[str, Any]:
        """
        Create an empty flow and return its info record.
        
        Args:
            name: Display name of the flow
            description: Optional description
            
        Returns:
            Info record with id, name, description and created_at
        """
        pass
    
    @abstractmethod
    def get_flow(self, flow_id: str) -> Optional[Dict[str, Any]]:
        """Return the info record of a flow, or None if it does not exist."""
        pass
    
    @abstractmethod
    def list_flows(self) -> List[Dict[str, Any]]:
        """Return the info records of all flows."""
        pass
    
    @abstractmethod
    def delete_flow(self, flow_id: str) -> bool:
        """
        Delete a flow and its data.
        
        Returns:
            True if successfully deleted, False otherwise
        """
        pass
    
    @abstractmethod
    def save_flow_data(self, flow_id: str, data: Dict[str, Any]) -> None:
        """
        Replace the stored nodes/edges of a flow.
        
        Raises:
            PersistenceError: if the store rejected the write
        """
        pass
    
    @abstractmethod
    def load_flow_data(self, flow_id: str) -> Dict[str, Any]:
        """
        Load the stored nodes/edges of a flow.
        
        Returns:
            ``{"nodes": [...], "edges": [...]}``, empty lists for a new flow
        """
        pass
