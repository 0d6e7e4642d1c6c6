# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Centralized logging for dynamic storage sizing.

Tracks sizing decisions and resize actions across tiers (CORE, CLI)
"""

import logging
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List
from collections import deque
from threading import Lock

from .models.sizing_models import ReconcileDecision, ExecutionResult
from .quantity import format_quantity

DEFAULT_STATE_DIR = Path.home() / '.cnpg-dynamic-storage'


class StructuredLogger:
    """Centralized structured logging with live viewing support."""
    
    def __init__(self, max_entries: int = 1000, state_dir: Optional[Path] = None, persist: bool = True):
        self.max_entries = max_entries
        self.log_buffer = deque(maxlen=max_entries)
        self.lock = Lock()
        self.state_dir = state_dir or DEFAULT_STATE_DIR
        self.log_file = self.state_dir / 'logs' / 'operations.jsonl' if persist else None
        
        self.logger = logging.getLogger('dynamic_storage.operations')
        self.logger.setLevel(logging.INFO)
        self._handler = None
        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            self._handler = logging.FileHandler(self.log_file)
            self._handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(self._handler)
    
    def log_operation(
        self,
        operation: str,
        tier: str,
        details: Optional[Dict[str, Any]] = None,
        status: str = 'initiated',
        error: Optional[str] = None
    ):
        """Log an operation across any tier.
        
        Args:
            operation: Operation name (e.g., 'sizing_decision', 'reconcile')
            tier: Tier name (CORE, CLI)
            details: Additional operation details
            status: Operation status (initiated, success, error)
            error: Error message if status is error
            
        Returns:
            Log entry dictionary
        """
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'operation': operation,
            'tier': tier,
            'status': status,
            'details': details or {},
            'error': error
        }
        
        with self.lock:
            self.log_buffer.append(entry)
            if self._handler is not None:
                self.logger.info(json.dumps(entry, default=str))
        
        return entry
    
    def log_sizing_decision(self, cluster: str, namespace: str, decision: ReconcileDecision):
        """Log the decision taken for one volume.
        
        Args:
            cluster: Cluster name
            namespace: Cluster namespace
            decision: Sizing decision
            
        Returns:
            Log entry dictionary
        """
        return self.log_operation(
            operation='sizing_decision',
            tier='CORE',
            details={
                'cluster': cluster,
                'namespace': namespace,
                'volume': str(decision.volume),
                'action': decision.action.value,
                'current_size': format_quantity(decision.current_size),
                'target_size': format_quantity(decision.target_size),
                'reason': decision.reason,
                'instance': decision.instance_name,
            },
            status='success'
        )
    
    def log_resize_action(
        self,
        cluster: str,
        namespace: str,
        decision: ReconcileDecision,
        result: Optional[ExecutionResult] = None,
        error: Optional[str] = None
    ):
        """Log a claim resize attempt.
        
        Args:
            cluster: Cluster name
            namespace: Cluster namespace
            decision: Decision that was executed
            result: Executor result (None when it failed)
            error: Error message if the patch failed
            
        Returns:
            Log entry dictionary
        """
        details = {
            'cluster': cluster,
            'namespace': namespace,
            'volume': str(decision.volume),
            'action': decision.action.value,
            'from': format_quantity(decision.current_size),
            'to': format_quantity(decision.target_size),
        }
        if result is not None:
            details['outcome'] = result.outcome.value
            details['patched_claims'] = result.patched_claims
        return self.log_operation(
            operation='resize_volume',
            tier='CORE',
            details=details,
            status='success' if not error else 'error',
            error=error
        )
    
    def log_cli_command(
        self,
        command: str,
        args: Dict,
        result: str,
        error: Optional[str] = None
    ):
        """Log CLI command execution.
        
        Args:
            command: Command name
            args: Command arguments
            result: Execution result
            error: Error message if failed
            
        Returns:
            Log entry dictionary
        """
        return self.log_operation(
            operation=command,
            tier='CLI',
            details={'args': args, 'result': result},
            status='success' if not error else 'error',
            error=error
        )
    
    def get_recent_logs(self, count: int = 100, tier: Optional[str] = None) -> List[Dict]:
        """Get recent log entries.
        
        Args:
            count: Number of recent entries to return
            tier: Filter by tier (optional)
            
        Returns:
            List of log entry dictionaries
        """
        with self.lock:
            entries = list(self.log_buffer)
        
        if tier:
            entries = [e for e in entries if e['tier'] == tier]
        
        return entries[-count:]
    
    def get_logs_since(self, since: datetime) -> List[Dict]:
        """Get logs since timestamp.
        
        Args:
            since: Timezone-aware datetime to filter from
            
        Returns:
            List of log entries after timestamp
        """
        with self.lock:
            entries = list(self.log_buffer)
        
        return [
            e for e in entries
            if datetime.fromisoformat(e['timestamp']) > since
        ]
    
    def clear_logs(self):
        """Clear in-memory log buffer."""
        with self.lock:
            self.log_buffer.clear()


# Global logger instance
_logger_instance = None


def get_logger() -> StructuredLogger:
    """Get global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = StructuredLogger()
    return _logger_instance
