"""
Fixed catalogues for the full-license and restricted-license mock tests.
Assessment items, tasks, hazard grid, error labels, stages and fault categories.
"""

# ============= Full-license mock test =============

FULL_LICENSE_ASSESSMENT_ITEMS = [
    {"id": "observation", "label": "Observation"},
    {"id": "signalling", "label": "Signalling"},
    {"id": "gapSelection", "label": "Gap selection"},
    {"id": "followingDistance", "label": "Following distance"},
    {"id": "hazardDetection", "label": "Hazard detection"},
    {"id": "hazardResponse", "label": "Hazard response"},
]
FULL_LICENSE_ITEM_IDS = [item["id"] for item in FULL_LICENSE_ASSESSMENT_ITEMS]

FULL_LICENSE_TASKS = [
    {
        "id": "left_turn",
        "name": "Turning Left",
        "variants": [
            "Give way – turning left at intersection",
            "Stop sign – turning left",
            "Signalised intersection – turning left",
            "Left turn from side road to main road",
        ],
    },
    {
        "id": "right_turn",
        "name": "Turning Right",
        "variants": [
            "Right turn across oncoming traffic (1 lane)",
            "Right turn across oncoming traffic (2 lanes)",
            "Right turn from side road to main road",
            "Right turn at signalised intersection",
        ],
    },
    {
        "id": "lane_change_left",
        "name": "Lane Change Left",
        "variants": ["Change left – mirror/signal/head-check", "Move left to prepare for turn"],
    },
    {
        "id": "lane_change_right",
        "name": "Lane Change Right",
        "variants": ["Change right – mirror/signal/head-check", "Move right to prepare for turn"],
    },
    {
        "id": "roundabout_right",
        "name": "Right at Roundabout",
        "variants": [
            "3rd exit / right turn at single-lane roundabout",
            "Right at multi-lane roundabout (choose correct lane)",
        ],
    },
]
FULL_LICENSE_TASK_IDS = [task["id"] for task in FULL_LICENSE_TASKS]

FULL_LICENSE_MODES = ("official", "drill")
FULL_LICENSE_WEATHER = {"dry": "Dry", "wet": "Wet", "low_visibility": "Low visibility"}

# Hazard perception grid: category x direction, only layout cells are recorded
HAZARD_CATEGORIES = {"pedestrians": "Pedestrians", "vehicles": "Vehicles", "others": "Others"}
HAZARD_DIRECTIONS = {"left": "Left", "right": "Right", "ahead": "Ahead", "behind": "Behind", "others": "Others"}
HAZARD_LAYOUT = {
    "pedestrians": ["left", "right", "ahead", "others"],
    "vehicles": ["left", "right", "ahead", "behind", "others"],
    "others": ["left", "right", "ahead", "behind", "others"],
}
HAZARD_RESPONSES = {"yes": "Yes", "no": "No", "na": "N/A"}

FULL_LICENSE_CRITICAL_ERRORS = [
    "Late/incorrect observation (missed head check / mirrors)",
    "Signalling incorrect / late / missing",
    "Poor gap selection (forced other road users to slow/stop)",
    "Following distance too close for conditions",
    "Speed inappropriate for conditions",
    "Lane position poor (crowding centre line / kerb)",
    "Did not identify obvious hazard",
    "Did not respond appropriately to hazard",
]

FULL_LICENSE_IMMEDIATE_ERRORS = [
    "Collision or near-collision requiring examiner intervention",
    "Examiner intervention (verbal/physical to prevent danger)",
    "Disobeyed stop sign/red light (dangerous)",
    "Drove on wrong side / dangerous lane incursion",
]

# ============= Restricted-license mock test =============

RESTRICTED_FAULT_CATEGORIES = [
    {"id": "observation", "label": "Observation"},
    {"id": "signalling", "label": "Signalling"},
    {"id": "gap", "label": "Gap selection"},
    {"id": "speed", "label": "Speed choice"},
    {"id": "following", "label": "Following distance"},
    {"id": "lateral", "label": "Lateral position"},
    {"id": "parkObs", "label": "Parking observation"},
    {"id": "parkMove", "label": "Parking movement"},
    {"id": "leavePark", "label": "Leaving park"},
    {"id": "turnMovement", "label": "Turning movement (3-pt turn)"},
]
RESTRICTED_FAULT_IDS = [item["id"] for item in RESTRICTED_FAULT_CATEGORIES]

RESTRICTED_STAGES = [
    {
        "id": "stage1",
        "name": "Stage 1 - Basic Tasks (approx 10min)",
        "note": "Screening stage in simpler traffic. If performance is clearly unsafe, don't continue to Stage 2.",
        "badge": "Screening stage",
        "tasks": [
            {"id": "s1_rt", "name": "Right turn giving way", "speed": "≤60", "targetReps": 10},
            {"id": "s1_lt", "name": "Left turn giving way", "speed": "≤60", "targetReps": 10},
            {"id": "s1_lcr", "name": "Lane change right", "speed": "≤60", "targetReps": 5},
            {"id": "s1_lcl", "name": "Lane change left", "speed": "≤60", "targetReps": 5},
            {"id": "s1_rpp", "name": "Reverse Parallel Park", "speed": "Low / kerbside", "targetReps": 3},
            {"id": "s1_extra", "name": "Extra task/variation", "speed": "Custom", "targetReps": 5},
        ],
    },
    {
        "id": "stage2",
        "name": "Stage 2 - Higher-Demand Tasks (approx 35min)",
        "note": "Moderate to heavy traffic, wider range of turns, lane changes, merges, roundabouts and speeds.",
        "badge": "Main assessment",
        "tasks": [
            {"id": "s2_rt1", "name": "Right turn giving way (1 lane each way)", "speed": "50–60", "targetReps": 10},
            {"id": "s2_rt2", "name": "Right turn giving way (2 lanes each way)", "speed": "50–60", "targetReps": 10},
            {"id": "s2_rtOncoming1", "name": "Right turn across 1 lane oncoming", "speed": "50–60", "targetReps": 10},
            {"id": "s2_rtOncoming2", "name": "Right turn across 2 lanes oncoming", "speed": "50–60", "targetReps": 10},
            {"id": "s2_lt1", "name": "Left turn giving way (1 lane each way)", "speed": "50–60", "targetReps": 10},
            {"id": "s2_lt2", "name": "Left turn giving way (2 lanes each way)", "speed": "50–60", "targetReps": 10},
            {"id": "s2_ltPrio", "name": "Left turn with priority", "speed": "50–60", "targetReps": 10},
            {"id": "s2_lcr", "name": "Lane change right", "speed": "50–80", "targetReps": 5},
            {"id": "s2_lcl", "name": "Lane change left", "speed": "50–80", "targetReps": 5},
            {"id": "s2_lcrTurn", "name": "Lane change right for upcoming turn", "speed": "50–80", "targetReps": 5},
            {"id": "s2_lclTurn", "name": "Lane change left for upcoming turn", "speed": "50–80", "targetReps": 5},
            {"id": "s2_merge", "name": "Merge lanes", "speed": "70–100", "targetReps": 6},
            {"id": "s2_stMed", "name": "Straight drive - medium speed", "speed": "60–80", "targetReps": 4},
            {"id": "s2_stArt", "name": "Straight drive - arterial road / 100-110", "speed": "80–110", "targetReps": 4},
            {"id": "s2_rbRight", "name": "Right turn at roundabout", "speed": "Varies", "targetReps": 4},
            {"id": "s2_rbStraight", "name": "Straight through at roundabout", "speed": "Varies", "targetReps": 4},
            {"id": "s2_extra1", "name": "Extra complex task / variation 1", "speed": "Custom", "targetReps": 5},
            {"id": "s2_extra2", "name": "Extra complex task / variation 2", "speed": "Custom", "targetReps": 5},
        ],
    },
]
RESTRICTED_STAGE_IDS = [stage["id"] for stage in RESTRICTED_STAGES]

RESTRICTED_CRITICAL_ERRORS = [
    "Too slow",
    "Too fast (minor)",
    "Failing to look",
    "Failing to signal",
    "Blocking pedestrian crossing",
    "Mounting kerb (single wheel, low risk)",
    "Stalling vehicle",
    "Incomplete stop at Stop sign",
    "Other illegal action",
]

RESTRICTED_IMMEDIATE_ERRORS = [
    "Testing officer / support person intervention",
    "Failing to carry out instruction",
    "Collision (kerb, object, vehicle, cyclist, pedestrian)",
    "Failing to give way (other road user takes evasive action)",
    "Excessive speed (≥5 km/h for 5+ sec, or ≥10 km/h)",
    "Stopping at dangerous position",
    "Failing to stop (Stop sign, red/yellow, rail)",
    "Other dangerous action",
]

# Values stored in the assessments.assessment_type column
ASSESSMENT_TYPE_FULL_LICENSE = "third_assessment"
ASSESSMENT_TYPE_RESTRICTED = "second_assessment"
