import os
import subprocess
import sys

import pytest

# Leaves first, so a failure points at the lowest broken module
MODULES = [
    # Independent modules (no internal deps)
    'sqlbridge.exceptions',
    'sqlbridge.utils',
    'sqlbridge.types',

    # Strategy (self-contained with raw execution)
    'sqlbridge.strategy.base',
    'sqlbridge.strategy',

    # Options, parameters and connection
    'sqlbridge.options',
    'sqlbridge.params',
    'sqlbridge.connection',
    'sqlbridge.transaction',

    # Mapping and marshalling
    'sqlbridge.schema',
    'sqlbridge.record',
    'sqlbridge.mapping',
    'sqlbridge.table',

    # Classification, loading and helpers
    'sqlbridge.diagnostics',
    'sqlbridge.classifier',
    'sqlbridge.bulk',
    'sqlbridge.query',

    # Main package
    'sqlbridge',
]


@pytest.mark.parametrize('module', MODULES)
def test_module_imports_in_fresh_interpreter(module):
    """Test that each module imports first, before anything else, without circular dependencies"""
    env = {**os.environ, 'PYTHONPATH': os.pathsep.join(p for p in sys.path if p)}
    proc = subprocess.run([sys.executable, '-c', f'import {module}'],
                          capture_output=True, text=True, check=False, env=env)
    assert proc.returncode == 0, proc.stderr


if __name__ == '__main__':
    __import__('pytest').main([__file__])
