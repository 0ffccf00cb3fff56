VERSION = "0.3.0"

# Update intervals (seconds); 0 disables the automatic refresh of a feed
DEFAULT_JOBS_INTERVAL = 60      # full job list, heavier request
DEFAULT_BUILDS_INTERVAL = 10    # recent-build feed, polled often

# Request layer
DEFAULT_REQUEST_TIMEOUT = 10    # seconds, multiplied by attempt number for each retry
REQUEST_ATTEMPTS = 2            # attempts per request (timeouts only)
AVAILABILITY_TIMEOUT = 15       # seconds for the start-up HEAD probe

# Recent-build feed
DEFAULT_MAX_BUILDS = 20

# Jenkins CSRF protection
DEFAULT_CRUMB_FIELD = "Jenkins-Crumb"

# Tree filters for the Jenkins JSON API
BUILD_TREE = "number,result,building,timestamp,duration,url"
JOBS_TREE = f"jobs[name,url,color,lastBuild[{BUILD_TREE}]]"
RECENT_BUILDS_TREE = f"jobs[name,lastBuild[{BUILD_TREE}]]"

# Maps the base of a Jenkins ball colour onto a BuildStatus name.
# "*_anime" variants (build in progress) are handled separately.
COLOR_TO_STATUS: dict[str, str] = {
    "blue":     "SUCCESS",
    "green":    "SUCCESS",
    "yellow":   "UNSTABLE",
    "red":      "FAILURE",
    "aborted":  "ABORTED",
    "disabled": "DISABLED",
    "notbuilt": "UNKNOWN",
    "grey":     "UNKNOWN",
}

# Maps a Jenkins build "result" onto a BuildStatus name
RESULT_TO_STATUS: dict[str, str] = {
    "SUCCESS":   "SUCCESS",
    "UNSTABLE":  "UNSTABLE",
    "FAILURE":   "FAILURE",
    "ABORTED":   "ABORTED",
    "NOT_BUILT": "UNKNOWN",
}

# HTTP statuses that will not heal on their own
REJECTED_STATUSES = frozenset({401, 403, 404})

# Statuses accepted for a "build" POST (302 when Jenkins redirects to the queue)
TRIGGER_ACCEPTED_STATUSES = frozenset({200, 201, 302})
