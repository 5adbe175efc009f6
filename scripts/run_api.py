import uvicorn
import os
import sys

# Add project root to sys.path so we can import 'lago' without installing
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(PROJECT_ROOT)

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8787))
    print(f"Starting Friendly Lago API from {PROJECT_ROOT} on :{port}...")
    # reload=True for dev convenience
    uvicorn.run("lago.api.main:app", host="127.0.0.1", port=port, reload=True)
