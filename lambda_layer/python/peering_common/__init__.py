# lambda_layer/python/peering_common/__init__.py
"""
Shared code for the VPC peering custom resource handlers.
Deployed as a Lambda layer so every handler imports it the same way.
"""
