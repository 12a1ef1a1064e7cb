"""
Progress reporting and cancellation
"""
import asyncio
from albumpy import AlbumUploader, APIConfig, CancelledError


async def main():
    async with AlbumUploader(APIConfig.from_env()) as uploader:
        files = await uploader.load_files(["big_01.jpg", "big_02.jpg"])

        def on_progress(unit_id, progress):
            print(f"{unit_id}: {progress.files_completed}/{progress.total_files} files, "
                  f"{progress.percentage:.1f}%")

        def on_status(unit_id, status):
            print(f"{unit_id}: {status}")

        task = asyncio.ensure_future(uploader.upload_album(
            "album-1", files, "/Orders/demo/album-01",
            on_progress=on_progress, on_status=on_status
        ))

        # Change of mind after two seconds
        await asyncio.sleep(2)
        uploader.cancel("album-1")

        try:
            await task
        except CancelledError:
            print("Upload cancelled, nothing else will be sent")


if __name__ == "__main__":
    asyncio.run(main())
