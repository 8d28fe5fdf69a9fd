"""
Parallel Layer-1 emulation over many events.

Each worker process builds its own UCTLayer1 and runs a batch of events
through it; no trigger state is shared between processes.
"""

import multiprocessing as mp
import time
import traceback
from typing import Any, Dict, List, Optional, Tuple

from calotrig.utils.parallel_config import DEFAULT_EVENTS_PER_BATCH, get_event_worker_count


def split_events_into_batches(events: List, events_per_batch: int) -> List[List]:
    """Split a list of events into consecutive batches (the last one may be short)."""
    if events_per_batch < 1:
        raise ValueError(f"events_per_batch must be positive, got {events_per_batch}")
    return [events[i:i + events_per_batch] for i in range(0, len(events), events_per_batch)]


def process_event_batch_worker(args: Tuple) -> Tuple[int, Optional[List[Dict]], Optional[str]]:
    """
    Worker function emulating one batch of events.

    Parameters:
    -----------
    args : tuple
        (batch_idx, batch_events, config_name_or_object, keep_regions)

    Returns:
    --------
    tuple: (batch_idx, batch_results, error_message)
        batch_results is None if processing failed
        error_message is None if successful
    """
    batch_idx = args[0]
    try:
        batch_idx, batch_events, config, keep_regions = args

        # Import here to keep the worker importable under 'spawn'
        from calotrig.layer1.layer1 import fill_layer1
        from calotrig.layer1_config import build_layer1

        layer = build_layer1(config)
        results = []
        for tower_inputs in batch_events:
            if not layer.clear_event():
                return batch_idx, None, f"clear_event failed in batch {batch_idx+1}"
            failures = fill_layer1(layer, tower_inputs)
            if not layer.process():
                return batch_idx, None, f"process failed in batch {batch_idx+1}"

            event_result = {
                'summary': layer.get_summary(),
                'crate_et': [crate.et() for crate in layer.get_crates()],
                'routing_failures': failures,
            }
            if keep_regions:
                event_result['region_et'] = layer.region_arrays()['et']
            results.append(event_result)

        return batch_idx, results, None

    except Exception as e:
        error_msg = f"Error processing batch {batch_idx+1}: {str(e)}\n{traceback.format_exc()}"
        print(error_msg)
        return batch_idx, None, error_msg


def process_events_parallel(events: List[Dict], config: Any = '2016',
                            events_per_batch: int = DEFAULT_EVENTS_PER_BATCH,
                            max_workers: Optional[int] = None,
                            keep_regions: bool = False) -> List[Optional[Dict]]:
    """
    Run the Layer-1 emulation over many events in parallel.

    Parameters:
    -----------
    events : list of dict
        Tower inputs per event, as accepted by fill_layer1
    config : str or Layer1Config
        Preset name or configuration used to build each worker's layer
    events_per_batch : int
        Number of events handed to a worker at once
    max_workers : int, optional
        Maximum number of worker processes
    keep_regions : bool
        Also return the region ET array of every event

    Returns:
    --------
    list: one result dict per event in input order; None for events of failed batches
    """
    if not events:
        return []

    batches = split_events_into_batches(events, events_per_batch)
    max_workers = get_event_worker_count(len(events), events_per_batch, max_workers)

    print(f"Processing {len(events)} events in {len(batches)} batches using {max_workers} worker processes...")

    batch_args = [(idx, batch, config, keep_regions) for idx, batch in enumerate(batches)]
    batch_results = [None] * len(batches)
    failed_batches = []

    start_time = time.time()

    # Prefer 'fork' on POSIX to avoid __main__ guard requirements; fall back to 'spawn'
    if 'fork' in mp.get_all_start_methods():
        ctx = mp.get_context('fork')
    else:
        ctx = mp.get_context('spawn')

    with ctx.Pool(processes=max_workers) as pool:
        try:
            for batch_idx, results, error in pool.map(process_event_batch_worker, batch_args):
                if results is not None:
                    batch_results[batch_idx] = results
                else:
                    failed_batches.append((batch_idx, error))
        except Exception as e:
            print(f"Error in parallel event processing: {e}")
            pool.terminate()
            raise

    total_time = time.time() - start_time
    print(f"Parallel event processing completed in {total_time:.2f}s")

    if failed_batches:
        print(f"Warning: failed batches: {[idx+1 for idx, _ in failed_batches]}")
        for idx, error in failed_batches:
            print(f"  Batch {idx+1}: {error}")

    flat_results: List[Optional[Dict]] = []
    for batch, results in zip(batches, batch_results):
        if results is None:
            flat_results.extend([None] * len(batch))
        else:
            flat_results.extend(results)
    return flat_results


def process_events_serial(events: List[Dict], config: Any = '2016', keep_regions: bool = False) -> List[Optional[Dict]]:
    """Same output as process_events_parallel, in the calling process."""
    _, results, error = process_event_batch_worker((0, events, config, keep_regions))
    if results is None:
        print(f"Warning: serial event processing failed: {error}")
        return [None] * len(events)
    return results
