# =============================================================================
# IDENTITY API SCAFFOLD - TEST PACKAGE
# =============================================================================
