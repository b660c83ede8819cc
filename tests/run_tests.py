#!/usr/bin/env python3
"""
Test runner for IPTB

Runs all unit tests and generates coverage report.
"""

import sys
import pytest
from pathlib import Path

# Add src directory to path
sys.path.append(str(Path(__file__).parent.parent / 'src'))


def run_all_tests():
    """Run all tests with coverage"""
    print("="*60)
    print("Running IPTB Test Suite")
    print("="*60)
    
    args = [
        'tests/',
        '-v',
        '--cov=iptb',
        '--cov-report=html',
        '--cov-report=term-missing',
        '--tb=short',
        '-l',
    ]
    
    exit_code = pytest.main(args)
    
    if exit_code == 0:
        print("\n" + "="*60)
        print("All tests passed!")
        print("="*60)
        print("\nCoverage report generated in htmlcov/index.html")
    else:
        print("\n" + "="*60)
        print("Some tests failed!")
        print("="*60)
    
    return exit_code


def run_specific_module(module_name):
    """Run tests for a specific module"""
    print(f"Running tests for module: {module_name}")
    
    test_file = f"tests/test_{module_name}.py"
    
    if not Path(test_file).exists():
        print(f"Error: Test file {test_file} not found!")
        return 1
    
    args = [
        test_file,
        '-v',
        '--tb=short',
        '-l',
    ]
    
    return pytest.main(args)


def run_process_tests():
    """Run only the tests that spawn daemon processes"""
    print("Running process tests...")
    
    args = [
        'tests/test_supervisor.py',
        'tests/test_orchestrator.py',
        '-v',
        '--tb=short',
    ]
    
    return pytest.main(args)


if __name__ == '__main__':
    import argparse
    
    parser = argparse.ArgumentParser(description='IPTB Test Runner')
    parser.add_argument('--module', type=str, help='Run tests for specific module')
    parser.add_argument('--processes', action='store_true', help='Run process tests only')
    
    args = parser.parse_args()
    
    if args.module:
        exit_code = run_specific_module(args.module)
    elif args.processes:
        exit_code = run_process_tests()
    else:
        exit_code = run_all_tests()
    
    sys.exit(exit_code)
