import os

# Must be set before config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FOODLINK_AUTH_SECRET"] = "test-secret"
os.environ["FLUTTERWAVE_PUBLIC_KEY"] = "FLWPUBK_TEST-foodlink"
os.environ["PAYSTACK_PUBLIC_KEY"] = "pk_test_foodlink"
os.environ["VERIFY_PAYMENTS"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")
