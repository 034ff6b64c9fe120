import uvicorn
import os

if __name__ == "__main__":
    port = int(os.environ.get("EDITOR_DEVSERVER_PORT", "9000"))

    print("Starting Abstract Editor development API...")
    print(f"Demo conference: http://localhost:{port}/api/conferences/demo")
    print(f"Docs available at: http://localhost:{port}/docs")

    uvicorn.run(
        "editor.devserver:app",
        host="127.0.0.1",
        port=port,
        reload=True
    )
