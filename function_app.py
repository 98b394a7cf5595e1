"""Azure Functions V2 entry point for the graph-drive HTTP endpoints."""

import os
import sys

# Add src/ to Python path so that Azure Functions runtime can resolve
# the graph_drive package from the src/ layout.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

import azure.functions as func

from graph_drive.functions.http_trigger import bp as http_bp

app = func.FunctionApp()
app.register_blueprint(http_bp)
