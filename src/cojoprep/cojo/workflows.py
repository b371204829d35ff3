import sys
from pathlib import Path

from rich.table import Table

from cojoprep.cojo.job_table import (
    make_job_table,
    read_job_table,
    select_job,
    write_job_table,
)
from cojoprep.cojo.runner import (
    build_gcta_command,
    cojo_params,
    run_cojo_local,
    run_cojo_task,
    write_array_script,
)
from cojoprep.utils.main import (
    array_task_id,
    close_logger,
    create_default_log,
    get_logger,
    resolve_config,
    safe_thread_count,
)
from cojoprep.utils.report import console, fail


def _cojo_settings(args, config):
    """bfile template, GCTA binary and COJO parameters after CLI overrides."""
    section = config.get("cojo", {})
    overrides = {
        "maf": getattr(args, "maf", None),
        "cojo_wind": getattr(args, "cojo_wind", None),
        "cojo_collinear": getattr(args, "cojo_collinear", None),
        "diff_freq": getattr(args, "diff_freq", None),
        "cojo_gc": getattr(args, "cojo_gc", None),
    }
    bfile_template = getattr(args, "bfile_template", None) or section.get("bfile_template")
    if not bfile_template or "{chr}" not in bfile_template:
        raise ValueError(
            f"❌ --bfile-template must contain a {{chr}} placeholder, got: {bfile_template!r}"
        )
    gcta = getattr(args, "gcta", None) or section.get("gcta", "gcta64")
    return bfile_template, gcta, cojo_params(config, overrides)


# ------------------------------------------------------------
# make-table
# ------------------------------------------------------------
def run_make_table_direct(args, ctx=None):
    config = resolve_config(getattr(args, "config", None))
    directory = Path(args.directory)
    output = Path(args.output) if args.output else directory / "cojo_jobs.txt"

    try:
        rows = make_job_table(
            directory,
            stats_glob=args.stats_glob or config["ma"]["stats_glob"],
            list_glob=args.list_glob or config["snplist"]["list_glob"],
            outdir=args.outdir,
        )
        write_job_table(rows, output)
    except (ValueError, FileNotFoundError) as e:
        fail(str(e))
        sys.exit(1)

    console.print(f"✅ Job table with {len(rows)} row(s) written: [cyan]{output}[/cyan]")
    console.print(f"   Submit as a job array with tasks [bold]1-{len(rows)}[/bold].")

    outputs = {"job_table": str(output), "n_tasks": len(rows)}
    if ctx is not None:
        ctx["cojo_table"] = outputs
    return outputs


# ------------------------------------------------------------
# run-task
# ------------------------------------------------------------
def run_cojo_task_direct(args, ctx=None):
    """
    One job-array task. Exits with GCTA's own exit code so the scheduler
    records the failure of that task.
    """
    config = resolve_config(getattr(args, "config", None))
    try:
        rows = read_job_table(args.job_table)
        task_id = args.task_id if args.task_id is not None else array_task_id()
        row = select_job(rows, task_id)
        bfile_template, gcta, params = _cojo_settings(args, config)
    except (ValueError, FileNotFoundError) as e:
        fail(str(e))
        sys.exit(1)

    if args.dry_run:
        console.print(" ".join(build_gcta_command(row, bfile_template, params, gcta)))
        return 0

    console.print(f"🚀 Task {task_id}: chromosome {row.chromosome}, list [cyan]{row.cond_file}[/cyan]")
    code = run_cojo_task(row, bfile_template, params, gcta)
    if code == 0:
        console.print(f"✅ Chr {row.chromosome} done → {row.output_prefix}")
    else:
        fail(f"❌ Chr {row.chromosome} failed (Exit {code}). See {row.output_prefix}.cojoprep.log")

    if ctx is not None:
        ctx["cojo_task"] = {"task_id": task_id, "exit_code": code, "output_prefix": row.output_prefix}
    sys.exit(code)


# ------------------------------------------------------------
# run-local
# ------------------------------------------------------------
def run_cojo_local_direct(args, ctx=None):
    config = resolve_config(getattr(args, "config", None))
    outdir = Path(args.outdir or Path.cwd())
    log_file = create_default_log("cojo_local", args.sample_id, outdir / "logs")
    logger = get_logger("cojo_local", log_file)

    try:
        rows = read_job_table(args.job_table)
        bfile_template, gcta, params = _cojo_settings(args, config)
    except (ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        close_logger(logger)
        fail(str(e))
        sys.exit(1)

    workers = safe_thread_count(
        min(args.workers, len(rows)),
        gb_per_thread=config["cojo"].get("gb_per_task", 16),
        console=console,
    )
    console.print(f"\n🚀 Running {len(rows)} COJO task(s) with {workers} worker(s)")
    logger.info(f"Job table {args.job_table}: {len(rows)} task(s), {workers} worker(s), params {params}")

    results = run_cojo_local(rows, bfile_template, params, gcta, workers=workers)

    table = Table(title="GCTA-COJO tasks", title_style="bold magenta", padding=(0, 1))
    table.add_column("#", justify="right")
    table.add_column("Chr", style="cyan", justify="right")
    table.add_column("Conditioning list", style="cyan")
    table.add_column("Status")
    table.add_column("Log")
    failed = 0
    for i, r in enumerate(results, start=1):
        ok = r["exit_code"] == 0
        failed += not ok
        status = "[green]✅ done[/green]" if ok else f"[red]❌ exit {r['exit_code']}[/red]"
        table.add_row(str(i), str(r["chromosome"]), Path(r["cond_file"]).name, status, r["log_file"])
        log = logger.info if ok else logger.error
        log(f"Task {i} chr {r['chromosome']} {r['cond_file']}: exit {r['exit_code']}")
    console.print(table)
    close_logger(logger)

    if ctx is not None:
        ctx["cojo_local"] = {"results": results, "log_file": log_file}
    if failed:
        fail(f"❌ {failed} of {len(results)} COJO task(s) failed.")
        sys.exit(1)
    console.print(f"✅ All {len(results)} COJO task(s) finished.")
    return results


# ------------------------------------------------------------
# array-script
# ------------------------------------------------------------
def run_array_script_direct(args, ctx=None):
    config = resolve_config(getattr(args, "config", None))
    section = config.get("cojo", {})
    try:
        rows = read_job_table(args.job_table)
        extra = []
        if args.config:
            extra += ["--config", str(Path(args.config).resolve())]
        if args.bfile_template:
            extra += ["--bfile-template", args.bfile_template]
        if args.gcta:
            extra += ["--gcta", args.gcta]
        for flag, value in [
            ("--maf", args.maf),
            ("--cojo-wind", args.cojo_wind),
            ("--cojo-collinear", args.cojo_collinear),
            ("--diff-freq", args.diff_freq),
        ]:
            if value is not None:
                extra += [flag, str(value)]
        if args.cojo_gc is False:
            extra.append("--no-cojo-gc")
        script = write_array_script(
            args.output,
            n_tasks=len(rows),
            job_table=Path(args.job_table).resolve(),
            scheduler=args.scheduler,
            runtime=args.runtime or section.get("runtime", "00:30:00"),
            memory=args.memory or section.get("memory", "16G"),
            extra_args=extra,
            workdir=args.workdir,
        )
    except (ValueError, FileNotFoundError) as e:
        fail(str(e))
        sys.exit(1)

    submit = "qsub" if args.scheduler == "sge" else "sbatch"
    console.print(f"✅ {args.scheduler.upper()} array script for {len(rows)} task(s): [cyan]{script}[/cyan]")
    console.print(f"   Submit with: [green]{submit} {script}[/green]")

    outputs = {"script": str(script), "n_tasks": len(rows)}
    if ctx is not None:
        ctx["cojo_array_script"] = outputs
    return outputs
