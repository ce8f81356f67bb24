from vehiclefinder.orchestrator.contracts import CapturePolicy, SegmentationMode

SINGLE_SHOT = CapturePolicy.SINGLE_SHOT    # one read, top candidate back to the host
MULTI_SEARCH = CapturePolicy.MULTI_SEARCH  # read, then search candidates until one hits
AUTO_SCAN = CapturePolicy.AUTO_SCAN        # timed reads until the same ID is seen twice

# Policy semantics:
# single_shot:  trigger -> read -> candidates[0]
# multi_search: trigger -> read -> search(c0), search(c1) ... first non-empty wins
# auto_scan:    timer -> read -> best candidate -> stable? -> stop timer (-> search)

# Still photos of a whole car: text is sparse. Live auto-scan is aimed at the
# plate itself, so it reads a single line.
SEGMENTATION = {
    SINGLE_SHOT: SegmentationMode.SPARSE_TEXT,
    MULTI_SEARCH: SegmentationMode.SPARSE_TEXT,
    AUTO_SCAN: SegmentationMode.SINGLE_LINE,
}
