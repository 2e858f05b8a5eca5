# run_tests.py
"""
Test runner for the clinic backend.
Runs every app's tests, one app, or the purchase pricing tests only.
"""
import os
import sys
import django

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.test')
django.setup()

from django.core.management import call_command
from django.test.utils import get_runner
from django.conf import settings


TEST_APPS = [
    'apps.core',
    'apps.users',
    'apps.distributors',
    'apps.medicines',
    'apps.purchases',
]


def run_labels(labels, title):
    print("=" * 80)
    print(title)
    print("=" * 80)
    print()

    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2, interactive=False)
    failures = test_runner.run_tests(labels)

    print()
    print("=" * 80)
    if failures:
        print(f"TESTS FAILED: {failures} failure(s)")
    else:
        print("ALL TESTS PASSED")
    print("=" * 80)
    return failures


def run_specific_app(app_name):
    """Run tests for a specific app"""
    print(f"Running tests for {app_name}...")
    call_command('test', f'apps.{app_name}', verbosity=2)


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Run tests for the clinic backend')
    parser.add_argument(
        '--app',
        type=str,
        help='Run tests for a specific app (e.g., purchases, medicines)'
    )
    parser.add_argument(
        '--pricing',
        action='store_true',
        help='Run only the purchase pricing calculator tests'
    )
    parser.add_argument(
        '--coverage',
        action='store_true',
        help='Run tests with coverage report'
    )

    args = parser.parse_args()

    if args.coverage:
        print("Running tests with coverage...")
        os.system('coverage run --source="apps" manage.py test --settings=config.settings.test')
        os.system('coverage report')
        os.system('coverage html')
        print("\nCoverage report generated in htmlcov/index.html")
    elif args.pricing:
        sys.exit(run_labels(['apps.purchases.tests.PricingCalculatorTests'], "PURCHASE PRICING TESTS"))
    elif args.app:
        run_specific_app(args.app)
    else:
        sys.exit(run_labels(TEST_APPS, "CLINIC BACKEND TEST SUITE"))
