"""
Several albums at once - they are queued and uploaded one at a time
"""
import asyncio
from albumpy import AlbumUploader, APIConfig, build_destination_root


async def upload(uploader, index, paths):
    unit_id = f"album-{index}"
    files = await uploader.load_files(paths)
    root = build_destination_root("/Orders", "order-1001", index)
    result = await uploader.upload_album(
        unit_id, files, root,
        on_status=lambda unit, status: print(f"{unit}: {status}")
    )
    return unit_id, result.share_url


async def main():
    albums = [
        ["a/01.jpg", "a/02.jpg"],
        ["b/01.jpg"],
        ["c/01.jpg", "c/02.jpg", "c/03.jpg"],
    ]

    async with AlbumUploader(APIConfig.from_env()) as uploader:
        # Watch the admission queue
        uploader.admission.events.on('queued', lambda unit, pos: print(f"{unit} waiting at {pos}"))

        results = await asyncio.gather(*(
            upload(uploader, index, paths) for index, paths in enumerate(albums, start=1)
        ))
        for unit_id, url in results:
            print(f"{unit_id}: {url}")


if __name__ == "__main__":
    asyncio.run(main())
