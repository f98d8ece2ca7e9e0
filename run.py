"""
run.py - Helper script to run the server
"""

import uvicorn

from school_timetable.config import ENV, PORT, configure_logging

if __name__ == "__main__":
    configure_logging()

    print(f"🚀 Starting School Timetable Scheduler")
    print(f"📍 Environment: {ENV}")
    print(f"🔌 Port: {PORT}")
    print(f"🌐 URL: http://localhost:{PORT}")
    print(f"📖 Docs: http://localhost:{PORT}/docs")
    print()

    if ENV == "development":
        uvicorn.run(
            "school_timetable.main:app",
            host="0.0.0.0",
            port=PORT,
            reload=True,
            log_level="info"
        )
    else:
        uvicorn.run(
            "school_timetable.main:app",
            host="0.0.0.0",
            port=PORT,
            workers=4,
            log_level="info"
        )
